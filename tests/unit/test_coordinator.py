"""Unit tests for the scrape coordinator."""

from unittest.mock import patch

import pytest

from tests.fixtures.sample_data import FakeTankerkoenigClient, make_prices, make_station
from tk_exporter.exporter.metrics import ExporterMetrics
from tk_exporter.models.errors import RemoteLookupError, ScrapeError
from tk_exporter.scrape.coordinator import BATCH_SIZE, ScrapeCoordinator, plan_batches
from tk_exporter.scrape.observations import DETAILS, OPEN, PRICE
from tk_exporter.scrape.registry import StationRegistry


class TestPlanBatches:

    def test_batch_sizes(self):
        ids = [f"s{i}" for i in range(23)]
        assert [len(b) for b in plan_batches(ids)] == [10, 10, 3]

    @pytest.mark.parametrize("count", [0, 1, 9, 10, 11, 20, 21, 100])
    def test_batches_cover_every_id_once(self, count):
        ids = [f"s{i}" for i in range(count)]

        batches = plan_batches(ids)

        assert len(batches) == -(-count // BATCH_SIZE)
        assert all(1 <= len(b) <= BATCH_SIZE for b in batches)
        flattened = [i for b in batches for i in b]
        assert flattened == ids

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            plan_batches(["a"], batch_size=0)


class TestRunCycle:

    def test_full_cycle(self, coordinator, fake_client, registry):
        observations = coordinator.run_cycle()

        assert len(fake_client.price_calls) == 3
        assert all(len(call) <= 10 for call in fake_client.price_calls)
        assert sorted(i for call in fake_client.price_calls for i in call) == sorted(registry)

        details = [o for o in observations if o.descriptor is DETAILS]
        opens = [o for o in observations if o.descriptor is OPEN]
        prices = [o for o in observations if o.descriptor is PRICE]
        assert len(details) == 23
        assert len(opens) == 23
        assert len(prices) == 23 * 3

    def test_batches_run_in_parallel(self, stations, registry, logger):
        client = FakeTankerkoenigClient(stations, make_prices([s.id for s in stations]), delay=0.2)
        coordinator = ScrapeCoordinator(client, registry, logger=logger)

        coordinator.run_cycle()

        assert client.max_concurrent > 1

    def test_success_updates_metrics(self, coordinator):
        coordinator.run_cycle()

        values = coordinator.metrics.values()
        assert values["tk_up"] == 1
        assert values["tk_exporter_scrapes_total"] == 1
        assert values["tk_exporter_scrape_failures_total"] == 0
        assert values["tk_exporter_scrape_duration_seconds"] > 0

    def test_failing_batch_fails_the_cycle(self, stations, registry, logger):
        client = FakeTankerkoenigClient(
            stations,
            make_prices([s.id for s in stations]),
            failing_ids=[stations[15].id],
        )
        coordinator = ScrapeCoordinator(client, registry, metrics=ExporterMetrics(), logger=logger)

        with pytest.raises(RemoteLookupError) as exc_info:
            coordinator.run_cycle()

        assert exc_info.value.status_code == 503
        values = coordinator.metrics.values()
        assert values["tk_up"] == 0
        assert values["tk_exporter_scrapes_total"] == 1
        assert values["tk_exporter_scrape_failures_total"] == 1

    def test_recovers_after_failure(self, stations, registry):
        client = FakeTankerkoenigClient(
            stations,
            make_prices([s.id for s in stations]),
            failing_ids=[stations[0].id],
        )
        coordinator = ScrapeCoordinator(client, registry)

        with pytest.raises(RemoteLookupError):
            coordinator.run_cycle()

        client.failing_ids.clear()
        observations = coordinator.run_cycle()

        assert observations
        values = coordinator.metrics.values()
        assert values["tk_up"] == 1
        assert values["tk_exporter_scrapes_total"] == 2
        assert values["tk_exporter_scrape_failures_total"] == 1

    def test_cycles_are_independent(self, coordinator):
        first = coordinator.run_cycle()
        second = coordinator.run_cycle()

        assert first == second

    def test_empty_registry(self, logger):
        client = FakeTankerkoenigClient()
        coordinator = ScrapeCoordinator(client, StationRegistry([]), logger=logger)

        assert coordinator.run_cycle() == []
        assert client.price_calls == []
        assert coordinator.metrics.values()["tk_up"] == 1

    def test_unexpected_error_is_wrapped(self, stations, registry):
        client = FakeTankerkoenigClient(
            stations,
            failing_ids=[stations[0].id],
            error=KeyError("prices"),
        )
        coordinator = ScrapeCoordinator(client, registry)

        with pytest.raises(RemoteLookupError, match="price lookup failed") as exc_info:
            coordinator.run_cycle()

        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_prices_for_unknown_ids_are_dropped(self, stations, registry):
        class ChattyClient(FakeTankerkoenigClient):
            def prices(self, station_ids):
                result = super().prices(station_ids)
                result["stranger"] = self.prices_by_id[station_ids[0]]
                return result

        client = ChattyClient(stations, make_prices([s.id for s in stations]))

        observations = ScrapeCoordinator(client, registry).run_cycle()

        assert "stranger" not in {o.labels[0] for o in observations}

    def test_observation_error_fails_the_cycle(self, coordinator):
        with patch(
            "tk_exporter.scrape.coordinator.observations_for_prices",
            side_effect=ValueError("bad record"),
        ):
            with pytest.raises(ScrapeError, match="bad record") as exc_info:
                coordinator.run_cycle()

        assert isinstance(exc_info.value.__cause__, ValueError)
        values = coordinator.metrics.values()
        assert values["tk_up"] == 0
        assert values["tk_exporter_scrapes_total"] == 1
        assert values["tk_exporter_scrape_failures_total"] == 1

    def test_station_with_impossible_coordinates(self, logger):
        station = make_station("far", lat=12.0, lng=-200.0)
        client = FakeTankerkoenigClient([station], make_prices(["far"]))
        coordinator = ScrapeCoordinator(client, StationRegistry([station]), logger=logger)

        observations = coordinator.run_cycle()

        [details] = [o for o in observations if o.descriptor is DETAILS]
        assert details.label_dict()["geohash"] == ""
        assert coordinator.metrics.values()["tk_up"] == 1
