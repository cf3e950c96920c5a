"""Driver services."""

from rancher_machine.services.driver import RancherDriver, build_user_data

__all__ = ["RancherDriver", "build_user_data"]
