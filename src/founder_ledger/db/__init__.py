from . import guards  # noqa: F401  registers the audit immutability listeners
