import math

import pytest

from swift_exporter.metrics.registry import MetricsRegistry
from swift_exporter.utils.exceptions import MetricRegistrationError


def _registry():
    reg = MetricsRegistry()
    reg.register("swift_log_file_size", "Size of the Swift log", ("FQDN", "UUID"), owner="CheckSwiftLogSize")
    reg.register("nic_mtu", "NIC MTU", ("nic_name", "FQDN", "UUID"), owner="GrabNICMTU")
    return reg


def test_set_then_snapshot_reads_back_value():
    reg = _registry()
    assert reg.set("swift_log_file_size", {"FQDN": "a", "UUID": "u"}, 2048)
    snap = reg.snapshot()
    assert snap["swift_log_file_size"].value(FQDN="a", UUID="u") == 2048.0
    assert reg.get("swift_log_file_size", ("a", "u")) == 2048.0


def test_set_is_an_overwrite_not_an_accumulation():
    reg = _registry()
    for _ in range(3):
        reg.set("nic_mtu", {"nic_name": "eth0", "FQDN": "a", "UUID": "u"}, 9000)
    assert reg.get("nic_mtu", {"nic_name": "eth0", "FQDN": "a", "UUID": "u"}) == 9000.0
    reg.set("nic_mtu", {"nic_name": "eth0", "FQDN": "a", "UUID": "u"}, 1500)
    assert reg.snapshot()["nic_mtu"].samples == {("eth0", "a", "u"): 1500.0}


def test_distinct_label_sets_are_distinct_series():
    reg = _registry()
    reg.set("nic_mtu", ("eth0", "a", "u"), 9000)
    reg.set("nic_mtu", ("eth1", "a", "u"), 1500)
    assert len(reg.snapshot()["nic_mtu"].samples) == 2


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_values_are_refused_and_previous_value_kept(bad):
    reg = _registry()
    reg.set("swift_log_file_size", ("a", "u"), 10)
    assert reg.set("swift_log_file_size", ("a", "u"), bad) is False
    assert reg.get("swift_log_file_size", ("a", "u")) == 10.0


def test_unset_families_have_no_samples_and_no_exposition_lines():
    reg = _registry()
    assert reg.snapshot()["nic_mtu"].samples == {}
    assert reg.get("nic_mtu", ("eth0", "a", "u")) is None
    text = reg.exposition().decode()
    assert "# HELP nic_mtu NIC MTU" in text
    assert "nic_mtu{" not in text


def test_duplicate_registration_is_fatal():
    reg = _registry()
    with pytest.raises(MetricRegistrationError):
        reg.register("nic_mtu", "again", ("nic_name",))


def test_family_without_labels():
    reg = MetricsRegistry()
    reg.register("swift_exporter_up", "plain gauge", ())
    assert reg.snapshot()["swift_exporter_up"].samples == {}
    assert "swift_exporter_up" not in reg.exposition().decode()

    assert reg.set("swift_exporter_up", {}, 1)
    assert reg.get("swift_exporter_up", ()) == 1.0
    assert reg.snapshot()["swift_exporter_up"].samples == {(): 1.0}
    assert "swift_exporter_up 1.0" in reg.exposition().decode()

    reg.set("swift_exporter_up", (), 0)
    assert reg.get("swift_exporter_up", {}) == 0.0
    reg.clear("swift_exporter_up")
    assert reg.get("swift_exporter_up", ()) is None
    assert "swift_exporter_up" not in reg.exposition().decode()
    reg.set("swift_exporter_up", (), 1)
    assert reg.get("swift_exporter_up", ()) == 1.0


def test_unknown_family_and_bad_labels():
    reg = _registry()
    with pytest.raises(KeyError):
        reg.set("does_not_exist", ("a",), 1)
    with pytest.raises(ValueError):
        reg.set("nic_mtu", {"nic": "eth0", "FQDN": "a", "UUID": "u"}, 1)
    with pytest.raises(ValueError):
        reg.set("nic_mtu", ("eth0",), 1)


def test_clear_and_remove():
    reg = _registry()
    reg.set("nic_mtu", ("eth0", "a", "u"), 9000)
    reg.set("nic_mtu", ("eth1", "a", "u"), 1500)
    reg.remove("nic_mtu", ("eth0", "a", "u"))
    reg.remove("nic_mtu", ("never", "a", "u"))
    assert list(reg.snapshot()["nic_mtu"].samples) == [("eth1", "a", "u")]
    reg.clear("nic_mtu")
    assert reg.snapshot()["nic_mtu"].samples == {}


def test_independent_instances_do_not_share_state():
    a, b = _registry(), _registry()
    a.set("swift_log_file_size", ("a", "u"), 1)
    assert b.get("swift_log_file_size", ("a", "u")) is None


def test_ownership_queries():
    reg = _registry()
    assert reg.owner("nic_mtu") == "GrabNICMTU"
    assert reg.names_owned_by("CheckSwiftLogSize") == ["swift_log_file_size"]
    assert "nic_mtu" in reg and "nope" not in reg
    assert reg.labelnames("nic_mtu") == ("nic_name", "FQDN", "UUID")
