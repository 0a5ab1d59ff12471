"""A TCP file server and client that stream a requested file over loopback."""

__version__ = "0.1.0"
__all__ = ["cli", "client", "server"]