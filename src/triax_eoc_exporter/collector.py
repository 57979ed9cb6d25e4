import logging
from typing import Dict, List, Optional, Union

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from .client import Client
from .samples import COUNTER, CTRL_UP, DESCRIPTORS, Sample

Family = Union[CounterMetricFamily, GaugeMetricFamily]


class PrometheusSink:
    """Collects samples into prometheus_client metric families."""

    def __init__(self) -> None:
        self._families: Dict[str, Family] = {}

    def add(self, sample: Sample) -> None:
        descriptor = DESCRIPTORS[sample.name]
        family = self._families.get(sample.name)
        if family is None:
            family_type = CounterMetricFamily if sample.kind == COUNTER else GaugeMetricFamily
            family = family_type(sample.name, descriptor.help, labels=list(descriptor.labels))
            self._families[sample.name] = family
        family.add_metric([sample.labels[label] for label in descriptor.labels], sample.value)

    def families(self) -> List[Family]:
        return list(self._families.values())


class EocCollector:
    def __init__(self, client: Client, logger: Optional[logging.Logger] = None) -> None:
        self.client = client
        self.logger = logger or logging.getLogger("triax_eoc_exporter")

    def collect(self):
        up_metric = GaugeMetricFamily(CTRL_UP, DESCRIPTORS[CTRL_UP].help, labels=[])
        sink = PrometheusSink()
        try:
            self.client.collect(sink)
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("Failed to scrape %s: %s", self.client.endpoint, exc)
            up_metric.add_metric([], 0)
            yield up_metric
            return

        up_metric.add_metric([], 1)
        yield up_metric
        yield from sink.families()
