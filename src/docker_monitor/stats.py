"""Decoding of Docker stats payloads into normalized samples."""

from collections.abc import Mapping
from typing import Any

from docker_monitor.errors import DecodeError
from docker_monitor.models import ContainerSample, RawStats

MIB = 1024 * 1024

# Core count assumed when the platform reports no per-core CPU usage
# (cgroup v2 hosts, Docker Desktop). An approximation; see --host-cores.
FALLBACK_CPU_COUNT = 7


def cpu_percentage(
    current_cpu: float,
    previous_cpu: float,
    current_system: float,
    previous_system: float,
    per_core_count: int,
    fallback_cpu_count: int = FALLBACK_CPU_COUNT,
) -> float:
    """
    Compute the CPU usage of a container from two cumulative counter pairs.

    The result may exceed 100.0 when more than one core is busy.

    Args:
        current_cpu: Total CPU time of the container at this sample.
        previous_cpu: Total CPU time of the container at the previous sample.
        current_system: System-wide CPU time at this sample.
        previous_system: System-wide CPU time at the previous sample.
        per_core_count: Number of per-core entries reported, 0 if none.
        fallback_cpu_count: Core count used when per_core_count is 0.
    """
    if per_core_count == 0:
        per_core_count = fallback_cpu_count

    cpu_delta = current_cpu - previous_cpu
    system_delta = current_system - previous_system
    # The first sample of a container has no previous system time
    if system_delta == 0:
        return 0.0
    return (cpu_delta / system_delta) * per_core_count * 100.0


def _section(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise DecodeError(f"stats section {key!r} is not an object")
    return value


def _counter(section: Mapping[str, Any], key: str) -> int:
    value = section.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"stats counter {key!r} is not a number: {value!r}")
    return int(value)


def parse_raw_stats(payload: Any) -> RawStats:
    """
    Extract the counters we use from an Engine API stats payload.

    Missing counters read as 0 and a missing ``networks`` section as no
    interfaces. Anything that is not shaped like a stats payload raises
    DecodeError.
    """
    if not isinstance(payload, Mapping):
        raise DecodeError(f"stats payload is not an object: {type(payload).__name__}")

    cpu_stats = _section(payload, "cpu_stats")
    precpu_stats = _section(payload, "precpu_stats")
    cpu_usage = _section(cpu_stats, "cpu_usage")
    precpu_usage = _section(precpu_stats, "cpu_usage")
    memory_stats = _section(payload, "memory_stats")

    percpu = cpu_usage.get("percpu_usage") or []

    networks: dict[str, tuple[int, int]] = {}
    for name, counters in _section(payload, "networks").items():
        if not isinstance(counters, Mapping):
            raise DecodeError(f"network counters for {name!r} are not an object")
        networks[name] = (_counter(counters, "rx_bytes"), _counter(counters, "tx_bytes"))

    return RawStats(
        cpu_total=_counter(cpu_usage, "total_usage"),
        precpu_total=_counter(precpu_usage, "total_usage"),
        system_cpu=_counter(cpu_stats, "system_cpu_usage"),
        presystem_cpu=_counter(precpu_stats, "system_cpu_usage"),
        percpu_count=len(percpu),
        memory_usage=_counter(memory_stats, "usage"),
        memory_limit=_counter(memory_stats, "limit"),
        networks=networks,
    )


def network_bytes(raw: RawStats, interface: str | None = "eth0") -> tuple[int, int]:
    """
    Received and transmitted bytes for one interface, or all when None.

    An interface the container does not have counts as zero; containers on
    the host network or under Docker Desktop often report no ``eth0``.
    """
    if interface is None:
        rx = sum(counters[0] for counters in raw.networks.values())
        tx = sum(counters[1] for counters in raw.networks.values())
        return rx, tx
    return raw.networks.get(interface, (0, 0))


def decode(
    raw: RawStats,
    interface: str | None = "eth0",
    fallback_cpu_count: int = FALLBACK_CPU_COUNT,
) -> ContainerSample:
    """Turn raw counters into a sample in percent and MiB."""
    rx, tx = network_bytes(raw, interface)
    return ContainerSample(
        cpu_percentage=cpu_percentage(
            raw.cpu_total,
            raw.precpu_total,
            raw.system_cpu,
            raw.presystem_cpu,
            raw.percpu_count,
            fallback_cpu_count,
        ),
        memory_usage_mb=raw.memory_usage / MIB,
        memory_limit_mb=raw.memory_limit / MIB,
        network_rx_mb=rx / MIB,
        network_tx_mb=tx / MIB,
    )
