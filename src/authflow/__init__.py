"""authflow: local accounts plus a simulated Google/GitHub OAuth sign-in flow."""

__all__ = ["__version__"]

__version__ = "0.1.0"
