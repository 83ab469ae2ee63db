"""autoscript - record, replay and resume terminal sessions."""

__version__ = "0.1.0"
