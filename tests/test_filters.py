import datetime as dt
import itertools

from rota.domain.models import Shift, ShiftStatus, ShiftType
from rota.services.filters import (
    ShiftFilters,
    apply_filters,
    build_predicates,
    filter_shifts,
    location_filter,
    relative_date_filter,
    status_filter,
    type_filter,
)

NOW = dt.datetime(2025, 3, 5, 10, 0)


def _shift(sid, start, user_id=None, status=None, location="Main St"):
    shift_type = ShiftType.ASSIGNED if user_id else ShiftType.OPEN
    return Shift(
        id=sid,
        company_id="acme",
        title=f"Shift {sid}",
        start_time=start,
        end_time=start + dt.timedelta(hours=8) if isinstance(start, dt.datetime) else None,
        user_id=user_id,
        type=shift_type,
        status=status or (ShiftStatus.SCHEDULED if user_id else ShiftStatus.OPEN),
        location=location,
    )


def _ids(shifts):
    return [s.id for s in shifts]


def _sample():
    return [
        _shift("a", dt.datetime(2025, 3, 5, 8), user_id="alice"),
        _shift("b", dt.datetime(2025, 3, 6, 9), user_id="bob", location="Harbour"),
        _shift("c", dt.datetime(2025, 3, 7, 9)),
        _shift("d", dt.datetime(2025, 3, 8, 9), user_id="alice", status=ShiftStatus.COMPLETED),
        _shift("e", dt.datetime(2025, 3, 9, 9), location="Harbour"),
    ]


def test_mine_keeps_own_and_open_shifts():
    result = apply_filters(_sample(), ShiftFilters(view="mine", current_user_id="alice"), now=NOW)
    assert _ids(result) == ["a", "c", "d", "e"]


def test_view_all_is_noop():
    result = apply_filters(_sample(), ShiftFilters(view="all", current_user_id="alice"), now=NOW)
    assert _ids(result) == ["a", "b", "c", "d", "e"]


def test_status_location_and_type_filters():
    shifts = _sample()
    assert _ids(apply_filters(shifts, ShiftFilters(status=ShiftStatus.COMPLETED), now=NOW)) == ["d"]
    assert _ids(apply_filters(shifts, ShiftFilters(location="Harbour"), now=NOW)) == ["b", "e"]
    assert _ids(apply_filters(shifts, ShiftFilters(shift_type=ShiftType.OPEN), now=NOW)) == ["c", "e"]


def test_unknown_values_are_noops():
    shifts = _sample()
    filters = ShiftFilters(status="sleeping", shift_type="borrowed", date_filter="decade")
    assert build_predicates(filters, NOW) == []
    assert _ids(apply_filters(shifts, filters, now=NOW)) == _ids(shifts)


def test_filter_composition_is_commutative():
    shifts = _sample()
    predicates = [
        status_filter(ShiftStatus.OPEN),
        location_filter("Harbour"),
        type_filter(ShiftType.OPEN),
        relative_date_filter("week", NOW),
    ]
    expected = _ids(filter_shifts(shifts, predicates))
    assert expected == ["e"]
    for order in itertools.permutations(predicates):
        assert _ids(filter_shifts(shifts, order)) == expected


def test_relative_date_windows():
    shifts = [
        _shift("past", dt.datetime(2025, 3, 4, 23, 0)),
        _shift("early-today", dt.datetime(2025, 3, 5, 1, 0)),
        _shift("tomorrow", dt.datetime(2025, 3, 6, 9, 0)),
        _shift("week-edge", dt.datetime(2025, 3, 12, 0, 0)),
        _shift("after-week", dt.datetime(2025, 3, 12, 1, 0)),
        _shift("month-edge", dt.datetime(2025, 4, 5, 0, 0)),
        _shift("after-month", dt.datetime(2025, 4, 6, 0, 0)),
    ]
    assert _ids(apply_filters(shifts, ShiftFilters(date_filter="today"), now=NOW)) == ["early-today"]
    assert _ids(apply_filters(shifts, ShiftFilters(date_filter="week"), now=NOW)) == [
        "early-today",
        "tomorrow",
        "week-edge",
    ]
    assert _ids(apply_filters(shifts, ShiftFilters(date_filter="month"), now=NOW)) == [
        "early-today",
        "tomorrow",
        "week-edge",
        "after-week",
        "month-edge",
    ]


def test_malformed_start_is_excluded_not_raised():
    good = _shift("good", dt.datetime(2025, 3, 5, 12, 0))
    bad = _shift("bad", dt.datetime(2025, 3, 5, 12, 0))
    bad.start_time = "not a timestamp"
    missing = _shift("missing", dt.datetime(2025, 3, 5, 12, 0))
    missing.start_time = None

    result = apply_filters([good, bad, missing], ShiftFilters(date_filter="today"), now=NOW)
    assert _ids(result) == ["good"]
    # Without the date filter the malformed shift is still listed
    assert _ids(apply_filters([good, bad], ShiftFilters(), now=NOW)) == ["good", "bad"]
