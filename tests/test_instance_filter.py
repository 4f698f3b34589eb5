"""Tests for the running-instance filter."""

from gae_peer_discovery.discovery.instance_filter import InstanceFilter
from gae_peer_discovery.discovery.models import PeerCandidate


def _rec(instance_id, status="RUNNING", zone="us-central1-f"):
    return {"id": instance_id, "vmStatus": status, "vmZoneName": zone}


class TestInstanceFilter:
    def test_keeps_only_running_in_order(self):
        records = [
            _rec("a"), _rec("b", status="STOPPING"), _rec("c", zone="z2"),
            _rec("d", status="STOPPED"), _rec("e"),
        ]
        result = InstanceFilter().filter(records)
        assert result == [
            PeerCandidate("a", "us-central1-f"),
            PeerCandidate("c", "z2"),
            PeerCandidate("e", "us-central1-f"),
        ]

    def test_status_match_is_case_sensitive(self):
        assert InstanceFilter().filter([_rec("a", status="running")]) == []

    def test_drops_missing_status(self):
        assert InstanceFilter().filter([{"id": "a", "vmZoneName": "z1"}]) == []

    def test_drops_malformed_records(self):
        records = [
            "not-a-dict",
            None,
            {"vmStatus": "RUNNING", "vmZoneName": "z1"},
            {"id": "a", "vmStatus": "RUNNING"},
            {"id": "", "vmStatus": "RUNNING", "vmZoneName": "z1"},
            {"id": 42, "vmStatus": "RUNNING", "vmZoneName": "z1"},
            _rec("ok"),
        ]
        assert InstanceFilter().filter(records) == [PeerCandidate("ok", "us-central1-f")]

    def test_filtering_is_idempotent(self):
        records = [_rec("a"), _rec("b", status="STOPPING"), _rec("c")]
        filt = InstanceFilter()
        first = filt.filter(records)
        running = [r for r in records if r["vmStatus"] == "RUNNING"]
        assert filt.filter(running) == first

    def test_empty_input(self):
        assert InstanceFilter().filter([]) == []
