import itertools
import random

import pytest

from src.nearby.models.domain import Cluster, GeoPoint, OrderRecord
from src.nearby.services.clustering.builder import build_clusters, link_bucket
from src.nearby.services.clustering.grid import bucket_key, build_buckets
from src.nearby.services.clustering.labels import (
    apply_unique_labels,
    derive_location_key,
    label_for,
    place_tokens,
)
from src.nearby.services.clustering.service import cluster_orders
from src.nearby.services.geospatial import distance_km
from src.nearby.services.orders.ingest import ingest_orders
from src.nearby.services.orders.status import is_batchable


def _order(
    oid: str,
    lat: float | None,
    lon: float | None,
    status: str = "READY",
    address: str = "",
) -> OrderRecord:
    coords = GeoPoint(lat, lon) if lat is not None and lon is not None else None
    return OrderRecord(
        id=oid,
        status=status,
        coords=coords,
        address_text=address,
        order_code=oid,
        keys=(oid,),
    )


def _random_orders(seed: int, count: int = 60) -> list[OrderRecord]:
    rng = random.Random(seed)
    orders = []
    for index in range(count):
        if index % 10 == 9:
            orders.append(_order(f"ORD-{index}", None, None))
            continue
        lat = 27.45 + rng.random() * 0.08
        lon = 89.60 + rng.random() * 0.08
        orders.append(_order(f"ORD-{index}", lat, lon))
    return orders


def _assert_invariants(orders: list[OrderRecord], clusters: list[Cluster], radius_km: float) -> None:
    member_ids = [member.id for cluster in clusters for member in cluster.members]
    assert sorted(member_ids) == sorted(order.id for order in orders)

    no_coords = [cluster for cluster in clusters if cluster.is_no_coords]
    assert len(no_coords) <= 1
    for cluster in clusters:
        assert cluster.members
        if cluster.is_no_coords:
            assert cluster.centroid is None
            assert all(member.coords is None for member in cluster.members)
            continue
        assert cluster.centroid is not None
        assert all(member.coords is not None for member in cluster.members)
        for first, second in itertools.combinations(cluster.members, 2):
            assert distance_km(first.coords, second.coords) <= radius_km

    labels = [cluster.label for cluster in clusters]
    assert len(labels) == len(set(labels))

    counts = [cluster.count for cluster in clusters]
    assert counts == sorted(counts, reverse=True)


def test_nearby_orders_cluster_and_far_order_stands_alone():
    orders = [
        _order("A", 27.4712, 89.6339),
        _order("B", 27.4715, 89.6342),
        _order("C", 27.5500, 89.7000),
    ]

    clusters = cluster_orders(orders, radius_km=2)

    assert len(clusters) == 2
    assert [m.id for m in clusters[0].members] == ["A", "B"]
    assert [m.id for m in clusters[1].members] == ["C"]
    assert clusters[0].centroid.latitude == pytest.approx(27.47135)


def test_null_string_coordinates_go_to_no_coords_cluster():
    records = ingest_orders([
        {"order_id": "ORD-1", "status": "READY", "lat": "null", "lng": "null"},
        {"order_id": "ORD-2", "status": "READY", "lat": 0.0001, "lng": 0.0001},
    ])

    clusters = cluster_orders(records, radius_km=2)

    no_coords = [cluster for cluster in clusters if cluster.is_no_coords]
    assert len(no_coords) == 1
    assert [m.id for m in no_coords[0].members] == ["ORD-1"]
    assert no_coords[0].label == "Orders without location"
    located = [cluster for cluster in clusters if not cluster.is_no_coords]
    assert [m.id for m in located[0].members] == ["ORD-2"]


def test_empty_input_returns_no_clusters():
    assert cluster_orders([], radius_km=2) == []
    assert cluster_orders([_order("P", None, None, status="PENDING")], radius_km=2) == []


def test_ineligible_orders_are_excluded():
    orders = [
        _order("A", 27.4712, 89.6339, status="PENDING"),
        _order("B", 27.4715, 89.6342, status="CONFIRMED"),
        _order("C", 27.4716, 89.6343, status="delivered"),
    ]

    clusters = cluster_orders(orders, radius_km=2)

    assert [[m.id for m in c.members] for c in clusters] == [["B"]]


def test_custom_eligibility_predicate():
    orders = [_order("A", 27.4712, 89.6339, status="READY"), _order("B", 27.4715, 89.6342, status="CONFIRMED")]

    clusters = cluster_orders(orders, radius_km=2, eligible=is_batchable)

    assert [m.id for m in clusters[0].members] == ["A"]


def test_complete_linkage_prevents_chaining():
    # Points 0.9 km apart in a line: single linkage would chain all three.
    orders = [
        _order("A", 27.4700, 89.6300),
        _order("B", 27.4781, 89.6300),
        _order("C", 27.4862, 89.6300),
    ]
    assert distance_km(orders[0].coords, orders[1].coords) < 1.0
    assert distance_km(orders[0].coords, orders[2].coords) > 1.0

    groups = link_bucket(orders, radius_km=1.0)

    assert [[o.id for o in group] for group in groups] == [["A", "B"], ["C"]]


def test_link_bucket_joins_first_qualifying_group_not_nearest():
    orders = [
        _order("A", 27.4700, 89.6300),
        _order("B", 27.4790, 89.6300),
        _order("C", 27.4745, 89.6300),
    ]

    groups = link_bucket(orders, radius_km=0.6)

    # C is within 0.6 km of both A and B; it joins A's group, created first.
    assert [[o.id for o in group] for group in groups] == [["A", "C"], ["B"]]


def test_non_positive_radius_gives_one_cluster_per_point():
    orders = [_order("A", 27.47, 89.63), _order("B", 27.47, 89.63), _order("C", None, None)]

    clusters = build_clusters(orders, radius_km=0)

    assert [[m.id for m in c.members] for c in clusters] == [["A"], ["B"], ["C"]]
    assert clusters[-1].is_no_coords


def test_grid_bucket_key_and_boundary_split():
    radius_km = 1.0
    lat_step = radius_km / 111

    inside = GeoPoint(lat_step * 100 - 1e-6, 89.63)
    across = GeoPoint(lat_step * 100 + 1e-6, 89.63)

    assert bucket_key(inside, radius_km)[0] == 99
    assert bucket_key(across, radius_km)[0] == 100
    # Close neighbours across a cell edge are kept apart.
    clusters = build_clusters([_order("A", inside.latitude, 89.63), _order("B", across.latitude, 89.63)], radius_km)
    assert len(clusters) == 2


def test_build_buckets_preserves_input_order_and_skips_missing_coords():
    orders = [
        _order("A", 27.4712, 89.6339),
        _order("B", 40.0, -3.7),
        _order("C", None, None),
        _order("D", 27.4713, 89.6340),
    ]

    buckets = build_buckets(orders, radius_km=2)

    assert [[o.id for o in bucket] for bucket in buckets.values()] == [["A", "D"], ["B"]]


def test_bucket_key_rejects_non_positive_radius():
    with pytest.raises(ValueError):
        bucket_key(GeoPoint(0, 0), 0)


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_random_orders_respect_cluster_invariants(seed):
    orders = _random_orders(seed)

    clusters = cluster_orders(orders, radius_km=1.5)

    _assert_invariants(orders, clusters, 1.5)


@pytest.mark.parametrize("seed", [3, 11])
def test_reordered_input_keeps_invariants(seed):
    orders = _random_orders(seed)
    shuffled = list(orders)
    random.Random(seed).shuffle(shuffled)

    _assert_invariants(shuffled, cluster_orders(shuffled, radius_km=2.0), 2.0)
    _assert_invariants(orders, cluster_orders(orders, radius_km=2.0), 2.0)


def test_cluster_ids_are_stable_within_a_run():
    orders = _random_orders(5, count=30)

    clusters = cluster_orders(orders, radius_km=1.0)

    ids = [cluster.id for cluster in clusters]
    assert len(ids) == len(set(ids))
    assert "no-coords" in ids


def test_place_tokens_strip_numbers_plus_codes_and_banned_words():
    address = "12, FJHQ+2GC, Norzin Lam, Thimphu, Bhutan\nsecond line"

    assert place_tokens(address) == ["Norzin Lam", "Thimphu"]
    assert place_tokens(address, ban_words=["thimphu"]) == ["Norzin Lam"]


def test_label_prefers_second_token():
    cluster = Cluster(
        id="cluster-1",
        members=[_order("A", 27.47, 89.63, address="House 12, Changzamtog, Thimphu")],
        centroid=GeoPoint(27.47, 89.63),
    )

    assert label_for(cluster) == "Changzamtog"


def test_label_falls_back_to_first_token_and_generic_text():
    single = Cluster("cluster-1", [_order("A", 1, 1, address="Main Street")], GeoPoint(1, 1))
    empty = Cluster("cluster-2", [_order("B", 1, 1, address="12, 3-4")], GeoPoint(1, 1))
    no_coords = Cluster("no-coords", [_order("C", None, None)], None, is_no_coords=True)

    assert label_for(single) == "Main Street"
    assert label_for(empty) == "Nearby orders"
    assert label_for(no_coords) == "Orders without location"


def test_label_is_truncated():
    cluster = Cluster("cluster-1", [_order("A", 1, 1, address="X" * 60)], GeoPoint(1, 1))

    label = label_for(cluster)

    assert len(label) == 40
    assert label.endswith("...")


def test_duplicate_labels_get_numeric_suffixes():
    orders = [
        _order("A", 27.4712, 89.6339, address="Main Street"),
        _order("B", 27.4715, 89.6342, address="Main Street"),
        _order("C", 27.5500, 89.7000, address="Main Street"),
    ]

    clusters = cluster_orders(orders, radius_km=2)

    assert [c.label for c in clusters] == ["Main Street", "Main Street #2"]
    assert [c.count for c in clusters] == [2, 1]


def test_unique_labels_survive_literal_suffix_collisions():
    clusters = [
        Cluster("cluster-1", [_order("A", 1, 1, address="Main Street"), _order("B", 1, 1)], GeoPoint(1, 1)),
        Cluster("cluster-2", [_order("C", 2, 2, address="Main Street #2")], GeoPoint(2, 2)),
        Cluster("cluster-3", [_order("D", 3, 3, address="Main Street")], GeoPoint(3, 3)),
    ]

    labelled = apply_unique_labels(clusters)

    labels = [c.label for c in labelled]
    assert labels[0] == "Main Street"
    assert len(set(labels)) == 3


def test_derive_location_key():
    assert derive_location_key("FJHQ+2GC, Thimphu, Bhutan") == "thimphu"
    assert derive_location_key("Bhutan") is None
    assert derive_location_key(None) is None


def test_ban_words_remove_merchant_locality_from_labels():
    orders = [_order("A", 27.47, 89.63, address="12, Norzin Lam, Thimphu, Bhutan")]

    assert cluster_orders(orders, 2)[0].label == "Thimphu"
    assert cluster_orders(orders, 2, ban_words=["thimphu"])[0].label == "Norzin Lam"


def test_threaded_bucket_linking_matches_sequential():
    orders = [order for order in _random_orders(13, count=40) if order.coords is not None]
    # Spread the points over several grid cells.
    orders += [_order(f"FAR-{i}", 27.0 + i * 0.2, 89.0 + i * 0.2) for i in range(5)]

    sequential = build_clusters(orders, radius_km=1.0)
    threaded = build_clusters(orders, radius_km=1.0, max_workers=4)

    assert [cluster.id for cluster in threaded] == [cluster.id for cluster in sequential]
    assert [[m.id for m in c.members] for c in threaded] == [[m.id for m in c.members] for c in sequential]
    assert [c.centroid for c in threaded] == [c.centroid for c in sequential]
