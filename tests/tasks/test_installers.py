import dataclasses

import pytest

from bridaprep.core.errors import ExecutionFailure
from bridaprep.core.registry import get_installer, get_strategy_registry
from bridaprep.core.types import InstallStrategy
from bridaprep.tasks import npm_global, pip_packages, source_build, system_packages


def by_name(components, name):
    return next(c for c in components if c.name == name)


def test_every_strategy_has_an_installer():
    registry = get_strategy_registry()
    assert set(registry) == set(InstallStrategy)
    assert get_installer(InstallStrategy.PACKAGE_MANAGER) is pip_packages.pip_install
    assert get_installer(InstallStrategy.LANGUAGE_RUNTIME_PACKAGE) is pip_packages.pip_install


def test_source_build_sequence(host, ctx, components):
    runtime = by_name(components, "python3.11")

    ran = source_build.build_from_source(runtime, ctx)

    url = "https://www.python.org/ftp/python/3.11.0/Python-3.11.0.tgz"
    assert source_build.source_archive_url(runtime) == url
    order = [
        "apt-get update",
        "apt-get install -y",
        f"wget -q -O Python-3.11.0.tgz {url}",
        "tar -xf Python-3.11.0.tgz",
        "./configure --prefix=/usr/local",
        "make -j",
        "make altinstall",
    ]
    positions = [host.index_of(step) for step in order]
    assert positions == sorted(positions)
    assert any(cmd.startswith("sudo make altinstall") for cmd in ran)
    assert host.system["python3.11"][0] == "3.11.0"
    # build directory removed afterwards
    assert host.ran("rm -rf")


def test_source_build_cleans_up_after_a_failure(host, ctx, components):
    runtime = by_name(components, "python3.11")
    host.fail_on.add("./configure")

    with pytest.raises(ExecutionFailure, match="Configuring build failed"):
        source_build.build_from_source(runtime, ctx)
    assert host.index_of("./configure") < host.index_of("rm -rf")
    assert not host.ran("make altinstall")


def test_pip_install_uses_the_environment_interpreter(host, ctx, components):
    ctx.environment.bin_dir.mkdir(parents=True)
    ctx.environment.python.write_text("")

    ran = pip_packages.pip_install(by_name(components, "frida-tools"), ctx)

    assert ran == [f"{ctx.environment.python} -m pip install frida-tools==13.2.1"]
    assert host.env_packages["frida-tools"] == "13.2.1"


def test_npm_install_is_privileged_and_pinned(host, ctx, components):
    ran = npm_global.npm_install_global(by_name(components, "frida-compile"), ctx)

    assert ran == ["sudo npm install -g frida-compile@10.2.5"]


def test_nodejs_adds_the_repository_first(host, ctx, components):
    node = by_name(components, "nodejs")
    host.system.pop("node")

    system_packages.apt_install(node, ctx)

    assert host.index_of("curl -fsSL https://deb.nodesource.com/setup_lts.x") < host.index_of(
        "apt-get install -y nodejs"
    )
    assert host.system["node"] == ("20.11.1", "/usr/bin/node")


def test_pinned_nodejs_uses_an_apt_version_glob(host, ctx, components):
    node = dataclasses.replace(by_name(components, "nodejs"), required_version="20.11.1")

    system_packages.apt_install(node, ctx)

    assert host.ran("apt-get install -y nodejs=20.11.1*")
