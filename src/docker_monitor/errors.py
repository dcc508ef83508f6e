"""Exceptions raised by docker-monitor."""


class MonitorError(Exception):
    """Base class for all docker-monitor errors."""


class AdapterConnectionError(MonitorError):
    """The Docker daemon could not be reached."""


class ContainerNotFound(MonitorError):
    """No container matches the given id or name."""


class StatsFetchError(MonitorError):
    """Stats for a container could not be fetched."""


class DecodeError(StatsFetchError):
    """A stats payload could not be decoded."""


class LifecycleOperationError(MonitorError):
    """A start, stop, remove, run, build or listing command failed."""
