"""Docker Machine driver for Rancher virtual machines."""

__version__ = "0.3.0"
