import pytest

from wwfm_fields.aggregation.models import (
    Distribution,
    DistributionValue,
    RatingReport,
    solution_fields_of,
    user_id_of,
)
from wwfm_fields.exceptions import InvalidDistributionShape


def test_from_dict_reads_camel_case_keys():
    dist = Distribution.from_dict(
        {
            "mode": "Weekly",
            "values": [{"value": "Weekly", "count": "3", "percentage": 100, "source": "studies"}],
            "totalReports": 3,
            "dataSource": "user_data",
        }
    )

    assert dist == Distribution(
        mode="Weekly",
        values=(DistributionValue("Weekly", 3, 100, "studies"),),
        total_reports=3,
        data_source="user_data",
    )


@pytest.mark.parametrize("raw_total", [True, False, "12", None])
def test_non_numeric_total_reports_read_as_zero(raw_total):
    dist = Distribution.from_dict({"mode": "", "values": [], "totalReports": raw_total})

    assert dist.total_reports == 0


def test_values_always_stored_as_tuple():
    dist = Distribution(mode="A", values=[DistributionValue("A", 1, 100)], total_reports=1)

    assert isinstance(dist.values, tuple)
    assert not dist.is_empty
    assert Distribution.empty().is_empty


def test_to_dict_omits_unset_provenance():
    dist = Distribution(mode="A", values=[DistributionValue("A", 1, 100)], total_reports=1)

    assert dist.to_dict() == {
        "mode": "A",
        "values": [{"value": "A", "count": 1, "percentage": 100}],
        "totalReports": 1,
    }


@pytest.mark.parametrize(
    "bad",
    [
        None,
        ["values"],
        {"mode": "A"},
        {"mode": "A", "values": {"value": "A"}},
        {"mode": "A", "values": ["A"]},
        {"mode": "A", "values": [{"value": "A", "percentage": "lots"}]},
    ],
)
def test_from_dict_rejects_malformed_shapes(bad):
    with pytest.raises(InvalidDistributionShape):
        Distribution.from_dict(bad)


def test_invalid_shape_is_a_value_error():
    with pytest.raises(ValueError):
        Distribution.coerce("not a distribution")


def test_coerce_returns_same_instance():
    dist = Distribution.empty()

    assert Distribution.coerce(dist) is dist


def test_report_accessors():
    report = RatingReport(solution_fields={"cost": "Free"}, user_id="u1")

    assert solution_fields_of(report) == {"cost": "Free"}
    assert user_id_of(report) == "u1"
    assert solution_fields_of({"solution_fields": "oops"}) is None
    assert user_id_of({}) is None
