"""AccessGate: role/permission authorization and idempotent access provisioning."""

__version__ = "0.1.0"
