"""Tests for sample rendering and the Prometheus collector."""

import logging

from prometheus_client import generate_latest
from prometheus_client.core import CollectorRegistry, CounterMetricFamily, GaugeMetricFamily

from conftest import add_v2_login, add_v2_status
from triax_eoc_exporter.collector import EocCollector, PrometheusSink
from triax_eoc_exporter.errors import TransportError
from triax_eoc_exporter.metrics import (
    UNKNOWN_PORT,
    ControllerInfo,
    Endpoint,
    GhnLink,
    GhnPort,
    GhnStats,
    InterfaceCounters,
    Memory,
    Metrics,
    Snr,
)
from triax_eoc_exporter.samples import (
    COUNTER,
    COUNTER_BYTES,
    CTRL_GHN_REGISTERED,
    CTRL_LOAD,
    CTRL_MEM_BUFFERED,
    CTRL_UP,
    GHN_RXBPS,
    GHN_SNR_AVG,
    GHN_WIRE_LENGTH,
    NODE_GHN_PORT,
    NODE_INFO,
    NODE_OFFLINE,
    NODE_UPTIME,
    port_label,
    render,
)


def _metrics(**kwargs):
    defaults = dict(
        info=ControllerInfo(serial="TXC1", mac="00:1e:c0:00:00:01", version="2.8.3"),
        uptime=100,
        memory=Memory(total=1000, free=500),
    )
    defaults.update(kwargs)
    return Metrics(**defaults)


def _named(samples, name):
    return [sample for sample in samples if sample.name == name]


class TestRender:
    def test_optional_controller_values_are_skipped(self):
        samples = list(render(_metrics()))
        assert _named(samples, CTRL_LOAD) == []
        assert _named(samples, CTRL_MEM_BUFFERED) == []

    def test_unknown_port_gets_its_own_label(self):
        samples = list(render(_metrics(ghn_ports={"aa": GhnPort(UNKNOWN_PORT, 3, 1)})))
        (registered,) = _named(samples, CTRL_GHN_REGISTERED)
        assert registered.labels == {"port": "unknown"}
        assert registered.value == 3
        assert port_label(2) == "2"

    def test_uptime_or_offline_since(self):
        endpoints = (
            Endpoint(name="up", mac="m1", status=3, uptime=50, offline_since=10),
            Endpoint(name="down", mac="m2", status=0, offline_since=10),
            Endpoint(name="never", mac="m3", status=0),
        )
        samples = list(render(_metrics(endpoints=endpoints)))
        assert [s.labels["name"] for s in _named(samples, NODE_UPTIME)] == ["up"]
        assert [s.labels["name"] for s in _named(samples, NODE_OFFLINE)] == ["down"]

    def test_missing_values_are_omitted(self):
        endpoint = Endpoint(name="ap", mac="m1", status=3, ghn_port_mac="aa", ghn_port_number=UNKNOWN_PORT)
        samples = list(render(_metrics(endpoints=(endpoint,))))
        assert _named(samples, GHN_RXBPS) == []
        assert _named(samples, NODE_GHN_PORT) == []
        assert _named(samples, NODE_INFO) == []

    def test_endpoint_details(self):
        endpoint = Endpoint(
            name="ap",
            mac="m1",
            status=3,
            serial="EP1",
            model="EP 1000",
            ghn_port_mac="aa",
            ghn_port_number=2,
            interfaces=(InterfaceCounters("eth1", rx_bytes=10, tx_bytes=20),),
            ghn=GhnStats(rxbps=5, txbps=6, snr=Snr(1.0, 2.0, 3.0)),
        )
        samples = list(render(_metrics(endpoints=(endpoint,))))

        (info,) = _named(samples, NODE_INFO)
        assert info.labels == {"name": "ap", "serial": "EP1", "mac": "m1", "model": "EP 1000"}
        (port,) = _named(samples, NODE_GHN_PORT)
        assert (port.value, port.labels["ghn_mac"]) == (2, "aa")
        assert [(s.labels["direction"], s.value, s.kind) for s in _named(samples, COUNTER_BYTES)] == [
            ("rx", 10, COUNTER),
            ("tx", 20, COUNTER),
        ]
        (avg,) = _named(samples, GHN_SNR_AVG)
        assert avg.labels == {"name": "ap", "side": "endpoint"}

    def test_links_render_controller_side(self):
        link = GhnLink(name="ap", wire_length=42, snr=Snr(1.0, 2.0, 3.0))
        samples = list(render(_metrics(ghn_links=(link,))))
        assert [s.value for s in _named(samples, GHN_WIRE_LENGTH)] == [42]
        (avg,) = _named(samples, GHN_SNR_AVG)
        assert avg.labels == {"name": "ap", "side": "controller"}


class TestPrometheusSink:
    def test_family_types(self):
        sink = PrometheusSink()
        endpoint = Endpoint(
            name="ap", mac="m1", status=3, interfaces=(InterfaceCounters("eth1", rx_bytes=10),)
        )
        for sample in render(_metrics(endpoints=(endpoint,))):
            sink.add(sample)

        families = {family.name: family for family in sink.families()}
        assert isinstance(families["triax_eoc_endpoint_interface_bytes"], CounterMetricFamily)
        assert isinstance(families["triax_eoc_controller_uptime"], GaugeMetricFamily)
        assert len(families["triax_eoc_endpoint_interface_bytes"].samples) == 2


class FailingClient:
    endpoint = "https://192.0.2.99"

    def collect(self, sink):
        raise TransportError("connection refused")


class TestEocCollector:
    def test_successful_scrape(self, client, mock_responses):
        add_v2_login(mock_responses)
        add_v2_status(mock_responses)

        families = list(EocCollector(client).collect())

        assert families[0].name == CTRL_UP
        assert families[0].samples[0].value == 1
        assert len(families) > 1

    def test_failed_scrape_only_reports_down(self, caplog):
        caplog.set_level(logging.ERROR, logger="triax_eoc_exporter")

        families = list(EocCollector(FailingClient()).collect())

        assert [family.name for family in families] == [CTRL_UP]
        assert families[0].samples[0].value == 0
        assert "connection refused" in caplog.text

    def test_exposition(self, client, mock_responses):
        add_v2_login(mock_responses)
        add_v2_status(mock_responses)
        registry = CollectorRegistry()
        registry.register(EocCollector(client))

        text = generate_latest(registry).decode()

        assert "triax_eoc_controller_up 1.0" in text
        assert 'triax_eoc_controller_ghn_endpoints_registered{port="1"} 2.0' in text
        (rx_bytes,) = [
            line
            for line in text.splitlines()
            if line.startswith("triax_eoc_endpoint_interface_bytes_total{")
            and 'name="ap-floor-1"' in line
            and 'interface="eth1"' in line
            and 'direction="rx"' in line
        ]
        assert rx_bytes.endswith(" 1000.0")
