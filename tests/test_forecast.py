import pandas as pd
import pytest

from finengine.domain import InvalidPayload
from finengine.forecast import calculate_cashflow_forecast, forecast_months


def make_shift(date, earnings):
    return {"date": date, "earnings": earnings}


def make_bill(due, amount):
    return {"dueDate": due, "amount": amount}


def forecast(shifts=(), bills=(), starting=0, **extra):
    payload = {
        "transactions": [],
        "shifts": list(shifts),
        "bills": list(bills),
        "startingBalance": starting,
        "asOf": "2026-10-17",
        **extra,
    }
    return calculate_cashflow_forecast(payload)


def test_twelve_months_from_as_of():
    result = forecast()
    assert len(result) == 12
    assert result[0]["month"] == "2026-10-01T00:00:00.000Z"
    assert result[-1]["month"] == "2027-09-01T00:00:00.000Z"


def test_running_balance():
    result = forecast(
        shifts=[make_shift("2026-10-05", 500), make_shift("2026-10-20", "250.5")],
        bills=[make_bill("2020-11-15", -200)],
        starting=1000,
    )
    october, november = result[0], result[1]
    assert october["income"] == 750.5
    assert october["expenses"] == 0
    assert october["startBalance"] == 1000
    assert october["endBalance"] == 1750.5
    assert november["income"] == 0
    assert november["expenses"] == 200
    assert november["net"] == -200
    assert november["startBalance"] == 1750.5
    assert november["endBalance"] == 1550.5
    assert result[-1]["endBalance"] == 1550.5
    for prev, cur in zip(result, result[1:]):
        assert cur["startBalance"] == prev["endBalance"]


def test_shifts_must_match_year_and_month():
    result = forecast(shifts=[make_shift("2025-10-05", 500), make_shift("2027-10-05", 500)])
    assert all(month["income"] == 0 for month in result)


def test_bills_ignore_year():
    result = calculate_cashflow_forecast(
        {"shifts": [], "bills": [make_bill("1999-12-01", 80)], "startingBalance": 0, "asOf": "2026-10-17"},
        periods=24,
    )
    charged = [m["month"][:7] for m in result if m["expenses"]]
    assert charged == ["2026-12", "2027-12"]
    assert result[-1]["endBalance"] == -160


def test_unparseable_dates_match_no_month():
    result = forecast(shifts=[make_shift("someday", 100)], bills=[make_bill(None, 50)], starting=10)
    assert all(m["income"] == 0 and m["expenses"] == 0 for m in result)
    assert result[-1]["endBalance"] == 10


def test_missing_shifts_and_bills_default_to_empty():
    result = calculate_cashflow_forecast({"startingBalance": "42", "asOf": "2026-01-31"})
    assert result[0]["month"] == "2026-01-01T00:00:00.000Z"
    assert result[-1]["endBalance"] == 42


def test_defaults_to_current_month():
    months = forecast_months()
    today = pd.Timestamp.today()
    assert (months[0].year, months[0].month, months[0].day) == (today.year, today.month, 1)


def test_invalid_as_of():
    with pytest.raises(InvalidPayload, match="asOf"):
        forecast(asOf="invalid")
