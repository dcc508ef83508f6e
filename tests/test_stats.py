"""Tests for CPU percentage calculation and stats decoding."""

import math

import pytest

from docker_monitor.errors import DecodeError
from docker_monitor.models import ContainerSample, RawStats
from docker_monitor.stats import (
    FALLBACK_CPU_COUNT,
    MIB,
    cpu_percentage,
    decode,
    network_bytes,
    parse_raw_stats,
)


def docker_payload(**overrides):
    """A stats payload shaped like the Engine API response."""
    payload = {
        "read": "2024-05-01T10:00:01.000000000Z",
        "preread": "2024-05-01T10:00:00.000000000Z",
        "cpu_stats": {
            "cpu_usage": {"total_usage": 3_000_000, "percpu_usage": [1, 2]},
            "system_cpu_usage": 20_000_000,
            "online_cpus": 2,
        },
        "precpu_stats": {
            "cpu_usage": {"total_usage": 1_000_000, "percpu_usage": [1, 1]},
            "system_cpu_usage": 10_000_000,
        },
        "memory_stats": {"usage": 50 * MIB, "limit": 2048 * MIB},
        "networks": {
            "eth0": {"rx_bytes": 3 * MIB, "tx_bytes": MIB},
            "eth1": {"rx_bytes": MIB, "tx_bytes": MIB},
        },
    }
    payload.update(overrides)
    return payload


class TestCpuPercentage:
    """Tests for cpu_percentage."""

    def test_basic_calculation(self):
        """Test the delta ratio is scaled by core count and 100."""
        assert cpu_percentage(20, 10, 200, 100, 4) == pytest.approx(40.0)

    def test_zero_system_delta_returns_zero(self):
        """Test a first sample without system delta gives 0.0, not NaN or Inf."""
        result = cpu_percentage(20, 10, 100, 100, 4)
        assert result == 0.0
        assert not math.isnan(result)
        assert not math.isinf(result)

    def test_zero_cores_uses_fallback(self):
        """Test the fallback core count replaces a missing per-core breakdown."""
        result = cpu_percentage(20, 10, 200, 100, 0)
        assert result == pytest.approx(0.1 * FALLBACK_CPU_COUNT * 100.0)
        assert result != 0.0

    def test_custom_fallback(self):
        """Test the fallback core count can be overridden."""
        assert cpu_percentage(20, 10, 200, 100, 0, fallback_cpu_count=2) == pytest.approx(20.0)

    def test_fallback_ignored_when_cores_reported(self):
        """Test the fallback only applies when no cores are reported."""
        assert cpu_percentage(20, 10, 200, 100, 1, fallback_cpu_count=64) == pytest.approx(10.0)

    def test_can_exceed_100(self):
        """Test several saturated cores give more than 100 percent."""
        assert cpu_percentage(300, 100, 200, 100, 4) == pytest.approx(800.0)

    def test_same_cpu_counter_gives_zero(self):
        """Test an idle container reports 0 percent."""
        assert cpu_percentage(10, 10, 200, 100, 0) == 0.0


class TestParseRawStats:
    """Tests for parse_raw_stats."""

    def test_reads_engine_payload(self):
        """Test all counters are read from their Engine API locations."""
        raw = parse_raw_stats(docker_payload())

        assert raw.cpu_total == 3_000_000
        assert raw.precpu_total == 1_000_000
        assert raw.system_cpu == 20_000_000
        assert raw.presystem_cpu == 10_000_000
        assert raw.percpu_count == 2
        assert raw.memory_usage == 50 * MIB
        assert raw.memory_limit == 2048 * MIB
        assert raw.networks == {"eth0": (3 * MIB, MIB), "eth1": (MIB, MIB)}

    def test_cgroup_v2_payload_without_percpu(self):
        """Test a payload without percpu_usage reports zero cores."""
        payload = docker_payload()
        del payload["cpu_stats"]["cpu_usage"]["percpu_usage"]
        assert parse_raw_stats(payload).percpu_count == 0

    def test_first_sample_with_empty_precpu(self):
        """Test an empty precpu section reads as zero counters."""
        raw = parse_raw_stats(docker_payload(precpu_stats={}))
        assert raw.precpu_total == 0
        assert raw.presystem_cpu == 0

    def test_missing_networks(self):
        """Test a container without networks has no interfaces."""
        payload = docker_payload()
        del payload["networks"]
        assert parse_raw_stats(payload).networks == {}

    def test_stopped_container_payload(self):
        """Test the near-empty payload of a stopped container decodes to zeros."""
        raw = parse_raw_stats({"cpu_stats": {"cpu_usage": {"total_usage": 0}}, "memory_stats": {}})
        assert raw == RawStats()

    @pytest.mark.parametrize("payload", [None, "not json", [1, 2, 3]])
    def test_non_mapping_payload(self, payload):
        """Test a payload that is not an object raises DecodeError."""
        with pytest.raises(DecodeError):
            parse_raw_stats(payload)

    def test_non_mapping_section(self):
        """Test a malformed section raises DecodeError."""
        with pytest.raises(DecodeError):
            parse_raw_stats(docker_payload(memory_stats=[1, 2]))

    def test_non_numeric_counter(self):
        """Test a non-numeric counter raises DecodeError."""
        with pytest.raises(DecodeError):
            parse_raw_stats(docker_payload(memory_stats={"usage": "lots", "limit": 1}))

    def test_decode_error_is_a_stats_fetch_error(self):
        """Test decode failures are handled like fetch failures."""
        from docker_monitor.errors import StatsFetchError

        assert issubclass(DecodeError, StatsFetchError)


class TestDecode:
    """Tests for decode."""

    def test_memory_in_mib(self):
        """Test one MiB of memory usage decodes to 1.0."""
        sample = decode(RawStats(memory_usage=1048576))
        assert sample.memory_usage_mb == 1.0

    def test_memory_limit_in_mib(self):
        """Test the memory limit is converted the same way."""
        sample = decode(RawStats(memory_usage=512 * MIB, memory_limit=2048 * MIB))
        assert sample.memory_usage_mb == 512.0
        assert sample.memory_limit_mb == 2048.0

    def test_selected_interface(self):
        """Test only the configured interface is reported."""
        sample = decode(parse_raw_stats(docker_payload()), interface="eth0")
        assert sample.network_rx_mb == 3.0
        assert sample.network_tx_mb == 1.0

    def test_all_interfaces(self):
        """Test interface None sums every interface."""
        sample = decode(parse_raw_stats(docker_payload()), interface=None)
        assert sample.network_rx_mb == 4.0
        assert sample.network_tx_mb == 2.0

    def test_missing_interface_is_zero(self):
        """Test an absent interface yields zero traffic instead of an error."""
        sample = decode(parse_raw_stats(docker_payload()), interface="wlan0")
        assert sample.network_rx_mb == 0.0
        assert sample.network_tx_mb == 0.0

    def test_cpu_delegated(self):
        """Test the CPU percentage comes from the counter pairs."""
        sample = decode(parse_raw_stats(docker_payload()))
        # (2_000_000 / 10_000_000) * 2 cores * 100
        assert sample.cpu_percentage == pytest.approx(40.0)

    def test_cpu_fallback_passed_through(self):
        """Test the fallback core count reaches the CPU calculation."""
        raw = RawStats(cpu_total=20, precpu_total=10, system_cpu=200, presystem_cpu=100)
        assert decode(raw, fallback_cpu_count=3).cpu_percentage == pytest.approx(30.0)

    def test_zero_raw_stats_give_zero_sample(self):
        """Test empty counters decode to the zero-value sample."""
        assert decode(RawStats()) == ContainerSample()


def test_network_bytes_default_interface():
    """Test network_bytes reads eth0 by default."""
    raw = RawStats(networks={"eth0": (10, 20), "eth1": (1, 2)})
    assert network_bytes(raw) == (10, 20)
    assert network_bytes(raw, None) == (11, 22)
