"""Errors raised by the object identity cache."""


class BindingError(ValueError):
    """Base class for invalid cache bindings."""


class MalformedBindingError(BindingError):
    """A binding element is not a class, mapping, entry or list."""


class MissingIdentityFieldError(BindingError):
    """An object selector carries none of the configured identity fields."""


class NilBindingError(BindingError):
    """A cache key was requested without any binding."""


class ConfigError(ValueError):
    """Cache settings failed validation."""
