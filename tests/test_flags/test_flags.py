"""Tests for the create flag table."""

import pytest

from rancher_machine.flags import CREATE_FLAGS, get_flag, resolve_options


def test_flag_table_names_and_env_vars():
    """Test the published flag names and environment fallbacks."""
    assert [(flag.name, flag.envvar) for flag in CREATE_FLAGS] == [
        ("rancher-url", "RANCHER_URL"),
        ("rancher-access-key", "RANCHER_ACCESS_KEY"),
        ("rancher-secret-key", "RANCHER_SECRET_KEY"),
        ("rancher-project-name", "RANCHER_ENVIRONMENT_NAME"),
        ("rancher-project-id", "RANCHER_ENVIRONMENT_ID"),
        ("rancher-os-image", "RANCHER_OS_IMAGE"),
        ("rancher-os-user", "RANCHER_OS_USER"),
        ("rancher-memory-mb", "RANCHER_MEMORY_MB"),
        ("rancher-vcpu", "RANCHER_VCPU"),
    ]


def test_flag_defaults():
    """Test the defaults of the optional flags."""
    assert get_flag("rancher-os-image").default == "rancher/vm-ubuntu"
    assert get_flag("rancher-os-user").default == "ubuntu"
    assert get_flag("rancher-memory-mb").default == 1024
    assert get_flag("rancher-vcpu").default == 2
    assert get_flag("rancher-url").default is None


def test_flag_usage_mentions_default():
    """Test that usage text advertises defaults."""
    assert "Default: 1024" in get_flag("rancher-memory-mb").usage
    assert "Default: rancher/vm-ubuntu" in get_flag("rancher-os-image").usage


def test_flag_dest():
    """Test the keyword form of flag names."""
    assert get_flag("rancher-access-key").dest == "rancher_access_key"


def test_get_flag_unknown():
    """Test that an unknown flag raises KeyError."""
    with pytest.raises(KeyError):
        get_flag("rancher-region")


def test_resolve_explicit_values_win():
    """Test that explicit values take precedence over the environment."""
    options = resolve_options(
        {"rancher-url": "https://a.example/v1", "rancher_vcpu": 8},
        environ={"RANCHER_URL": "https://b.example/v1", "RANCHER_VCPU": "4"},
    )

    assert options["rancher-url"] == "https://a.example/v1"
    assert options["rancher-vcpu"] == 8


def test_resolve_falls_back_to_environment():
    """Test that unset values are read from the environment."""
    options = resolve_options(
        {"rancher-url": None},
        environ={
            "RANCHER_URL": "https://rancher.example/v1",
            "RANCHER_ENVIRONMENT_NAME": "dev",
            "RANCHER_MEMORY_MB": "4096",
        },
    )

    assert options["rancher-url"] == "https://rancher.example/v1"
    assert options["rancher-project-name"] == "dev"
    assert options["rancher-memory-mb"] == "4096"


def test_resolve_falls_back_to_defaults():
    """Test defaults for values set nowhere, including empty env vars."""
    options = resolve_options({}, environ={"RANCHER_OS_USER": ""})

    assert options["rancher-os-user"] == "ubuntu"
    assert options["rancher-os-image"] == "rancher/vm-ubuntu"
    assert options["rancher-memory-mb"] == 1024
    assert options["rancher-vcpu"] == 2
    assert options["rancher-url"] is None
    assert options["rancher-project-id"] is None
    assert set(options) == {flag.name for flag in CREATE_FLAGS}
