"""Filter / sort / search over a slot dataset."""

import dataclasses
from datetime import date

import pytest

from classlens.aggregate import aggregate
from classlens.errors import QueryError, UnknownFieldError
from classlens.models import Slot, SlotField
from classlens.query import (
    ALL,
    DateRange,
    FilterOptions,
    SortKey,
    apply_field_filters,
    field_filter,
    normalize_filters,
    query,
    sort_slots,
    top_k,
)


def _slot(teacher: str, revenue: float, checkins: int = 0) -> Slot:
    return Slot(
        teacher_name=teacher, cleaned_class="Studio FIT", day_of_week="Friday", class_time="7:00 AM",
        location="Downtown", date="2024-01-05", period="Jan-24", unique_id=teacher,
        total_revenue=revenue, total_checkins=checkins, total_occurrences=1,
    )


def _total_checkins(slots):
    return sum(s.total_checkins for s in slots)


def test_date_range_recomputes_slot(scenario_a_rows):
    dataset = aggregate(scenario_a_rows)
    opts = FilterOptions(date_range=DateRange(date(2024, 1, 5), date(2024, 1, 10)))
    out = query(dataset, opts)
    assert len(out) == 1
    assert out[0].total_checkins == 7
    assert out[0].total_occurrences == 1
    assert [o.date for o in out[0].occurrences] == ["2024-01-08"]
    # dataset untouched
    assert dataset[0].total_checkins == 12


def test_narrower_range_never_adds_checkins(sample_slots):
    ranges = [
        DateRange(date(2024, 1, 1), date(2024, 2, 29)),
        DateRange(date(2024, 1, 1), date(2024, 1, 31)),
        DateRange(date(2024, 1, 2), date(2024, 1, 8)),
        DateRange(date(2024, 1, 3), date(2024, 1, 3)),
    ]
    totals = [_total_checkins(query(sample_slots, FilterOptions(date_range=r))) for r in ranges]
    assert totals == sorted(totals, reverse=True)


def test_slot_outside_range_is_dropped(sample_slots):
    out = query(sample_slots, FilterOptions(date_range=DateRange(date(2024, 2, 1), None)))
    teachers = sorted(s.teacher_name for s in out)
    assert teachers == ["Ava Singh", "Jane Doe"]
    assert all(s.total_occurrences > 0 for s in out)


def test_open_ended_ranges(sample_slots):
    until_jan = query(sample_slots, FilterOptions(date_range=DateRange(None, date(2024, 1, 31))))
    assert sorted(s.teacher_name for s in until_jan) == ["Jane Doe", "Sam Lee"]


def test_no_filters_returns_everything(sample_slots):
    assert query(sample_slots, FilterOptions()) == list(sample_slots)


def test_search_is_case_insensitive(sample_slots):
    out = query(sample_slots, FilterOptions(search_term="CARDIO"))
    assert [s.teacher_name for s in out] == ["Sam Lee"]
    out = query(sample_slots, FilterOptions(search_term="downtown"))
    assert len(out) == 2


def test_selectors_combine(sample_slots):
    out = query(sample_slots, FilterOptions(selected_location="Downtown", selected_day_of_week="Monday"))
    assert [s.teacher_name for s in out] == ["Jane Doe"]
    assert query(sample_slots, FilterOptions(selected_trainer="Nobody")) == []
    assert len(query(sample_slots, FilterOptions(selected_period="Jan-24"))) == 2


def test_normalize_filters_accepts_loose_input():
    opts = normalize_filters({
        "searchTerm": "  barre ",
        "selectedTrainer": "",
        "selected_location": "Uptown",
        "dateRange": {"from": "2024-01-01", "to": None},
    })
    assert opts.search_term == "barre"
    assert opts.selected_trainer == ALL
    assert opts.selected_location == "Uptown"
    assert opts.date_range == DateRange(date(2024, 1, 1), None)
    assert opts.active_count() == 3


def test_normalize_filters_drops_empty_range():
    assert normalize_filters({"date_range": (None, None)}).date_range is None
    assert normalize_filters({}) == FilterOptions()


def test_field_filters(sample_slots):
    out = apply_field_filters(sample_slots, [field_filter("checkins", "greater", 10)])
    assert [s.teacher_name for s in out] == ["Jane Doe", "Sam Lee"]
    out = apply_field_filters(sample_slots, [field_filter("teacher", "starts", "sa")])
    assert [s.teacher_name for s in out] == ["Sam Lee"]
    out = apply_field_filters(sample_slots, [field_filter("location", "in", "Uptown, Midtown")])
    assert [s.teacher_name for s in out] == ["Sam Lee"]
    out = apply_field_filters(sample_slots, [field_filter("classes", "equals", "3")])
    assert [s.teacher_name for s in out] == ["Jane Doe"]
    out = apply_field_filters(sample_slots, [field_filter("date", "after", "2024-01-31")])
    assert [s.teacher_name for s in out] == ["Ava Singh"]


def test_numeric_filter_on_text_field_matches_nothing(sample_slots):
    assert apply_field_filters(sample_slots, [field_filter("teacher", "greater", 5)]) == []


def test_unknown_field_and_operator():
    with pytest.raises(UnknownFieldError):
        field_filter("nope", "equals", 1)
    with pytest.raises(QueryError):
        field_filter("teacher", "resembles", "x")
    with pytest.raises(QueryError):
        SortKey.parse("revenue", "sideways")


def test_sort_revenue_desc_then_teacher_asc():
    slots = [_slot("Bob", 100.0), _slot("Cara", 50.0), _slot("Alice", 100.0)]
    keys = [SortKey(SlotField.TOTAL_REVENUE, descending=True), SortKey(SlotField.TEACHER_NAME)]
    out = sort_slots(slots, keys)
    assert [s.teacher_name for s in out] == ["Alice", "Bob", "Cara"]
    assert sort_slots(list(reversed(slots)), keys) == out


def test_sort_is_stable_on_full_ties():
    slots = [_slot("Bob", 10.0), _slot("Bob", 10.0, checkins=1), _slot("Bob", 10.0, checkins=2)]
    out = sort_slots(slots, [SortKey(SlotField.TOTAL_REVENUE)])
    assert [s.total_checkins for s in out] == [0, 1, 2]


def test_missing_averages_sort_last(make_row):
    slots = aggregate([
        make_row(first="A", checked_in=0),
        make_row(first="B", checked_in=4),
        make_row(first="C", checked_in=2),
    ])
    for descending in (False, True):
        out = sort_slots(slots, [SortKey(SlotField.AVG_EXCLUDING_EMPTY, descending)])
        assert out[-1].teacher_name == "A Doe"


def test_top_k():
    slots = [_slot("A", 10.0), _slot("B", 30.0), _slot("C", 20.0), _slot("D", 30.0)]
    out = top_k(slots, 3, SlotField.TOTAL_REVENUE)
    assert [s.teacher_name for s in out] == ["B", "D", "C"]
    assert top_k(slots, 0, SlotField.TOTAL_REVENUE) == []
    assert len(top_k(slots, 10, SlotField.TOTAL_REVENUE)) == 4


def test_date_range_results_stay_consistent_and_share_occurrences(sample_slots, assert_consistent):
    opts = FilterOptions(date_range=DateRange(date(2024, 1, 2), date(2024, 1, 8)))
    result = query(sample_slots, opts)
    assert result
    source = {s.key: s for s in sample_slots}
    for slot in result:
        assert_consistent(slot)
        src = source[slot.key]
        for occ in slot.occurrences:
            assert any(occ is o for o in src.occurrences)


def test_occurrences_and_slots_are_immutable(sample_slots):
    slot = sample_slots[0]
    with pytest.raises(dataclasses.FrozenInstanceError):
        slot.occurrences[0].checkins = 1
    with pytest.raises(dataclasses.FrozenInstanceError):
        slot.total_checkins = 0


def test_all_sentinel_is_case_insensitive(sample_slots):
    assert len(query(sample_slots, FilterOptions(selected_trainer="All"))) == 3
    assert len(query(sample_slots, FilterOptions(selected_location=" ALL "))) == 3
    assert normalize_filters({"selectedTrainer": "ALL"}).selected_trainer == ALL
