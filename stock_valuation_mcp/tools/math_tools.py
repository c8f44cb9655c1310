from __future__ import annotations

import math
from collections import Counter
from typing import Any, Dict, List

from . import RegisteredTool, define_tool
from .helpers import number, object_schema, string

# Approximate units per USD. Not live data; good enough for rough conversions.
RATES_PER_USD: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "JPY": 149.50,
    "CHF": 0.88,
    "CAD": 1.36,
    "AUD": 1.53,
    "CNY": 7.24,
    "HKD": 7.83,
    "SGD": 1.34,
    "THB": 32.00,
    "MYR": 4.75,
    "INR": 83.12,
    "KRW": 1320.00,
    "PHP": 56.00,
    "IDR": 15650.00,
    "VND": 24350.00,
}

MAX_COMPOUND_SCHEDULE_PERIODS = 120
MAX_LOAN_SCHEDULE_PAYMENTS = 360


async def _handle_statistics(arguments: Dict[str, Any]) -> Dict[str, Any]:
    data: List[float] = arguments["data"]
    sample: bool = arguments["sample"]
    if not data:
        raise ValueError("Data must be a non-empty array of numbers")
    if sample and len(data) < 2:
        raise ValueError("Sample statistics need at least two values")

    ordered = sorted(data)
    count = len(ordered)
    total = sum(ordered)
    average = total / count

    mid = count // 2
    median = ordered[mid] if count % 2 else (ordered[mid - 1] + ordered[mid]) / 2

    frequency = Counter(ordered)
    top = max(frequency.values())
    mode = [value for value, freq in frequency.items() if freq == top]

    variance = sum((x - average) ** 2 for x in ordered) / (count - 1 if sample else count)

    # Nearest-rank quartiles on the sorted data
    q1 = ordered[int(count * 0.25)]
    q3 = ordered[int(count * 0.75)]
    iqr = q3 - q1
    lower, upper = q1 - 1.5 * iqr, q3 + 1.5 * iqr

    return {
        "data": data,
        "count": count,
        "sum": total,
        "mean": average,
        "median": median,
        "mode": mode,
        "range": {"min": ordered[0], "max": ordered[-1], "spread": ordered[-1] - ordered[0]},
        "variance": variance,
        "standardDeviation": math.sqrt(variance),
        "quartiles": {"q1": q1, "q2": median, "q3": q3, "iqr": iqr},
        "outliers": [x for x in ordered if x < lower or x > upper],
    }


async def _handle_linear_regression(arguments: Dict[str, Any]) -> Dict[str, Any]:
    xs: List[float] = arguments["x"]
    ys: List[float] = arguments["y"]
    predict = arguments.get("predict")
    if len(xs) != len(ys) or len(xs) < 2:
        raise ValueError("X and Y must be arrays of equal length with at least 2 points")

    n = len(xs)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)
    sum_yy = sum(y * y for y in ys)

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        raise ValueError("Cannot calculate regression: all X values are the same")

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    spread_y = n * sum_yy - sum_y * sum_y
    if spread_y > 0:
        correlation = (n * sum_xy - sum_x * sum_y) / math.sqrt(denominator * spread_y)
    else:
        correlation = 0.0

    sign = "+" if intercept >= 0 else "-"
    if abs(slope) < 0.0001:
        trend = "neutral"
    else:
        trend = "increasing" if slope > 0 else "decreasing"

    result: Dict[str, Any] = {
        "slope": slope,
        "intercept": intercept,
        "correlation": correlation,
        "rSquared": correlation * correlation,
        "equation": f"y = {slope:.4f}x {sign} {abs(intercept):.4f}",
        "trend": trend,
    }
    if predict is not None:
        result["predictions"] = [slope * x + intercept for x in predict]
    return result


async def _handle_compound_interest(arguments: Dict[str, Any]) -> Dict[str, Any]:
    principal = arguments["principal"]
    rate = arguments["rate"]
    years = arguments["time"]
    frequency = arguments["frequency"]
    if principal <= 0:
        raise ValueError("Principal must be positive")
    if rate < 0:
        raise ValueError("Rate cannot be negative")
    if years <= 0:
        raise ValueError("Time must be positive")
    if frequency <= 0:
        raise ValueError("Frequency must be positive")

    periodic_rate = rate / frequency
    final_amount = principal * (1 + periodic_rate) ** (frequency * years)

    result: Dict[str, Any] = {
        "principal": principal,
        "rate": rate,
        "time": years,
        "frequency": frequency,
        "finalAmount": final_amount,
        "totalInterest": final_amount - principal,
        "effectiveRate": (1 + periodic_rate) ** frequency - 1,
    }

    if arguments["showSchedule"] and years * frequency <= MAX_COMPOUND_SCHEDULE_PERIODS:
        schedule = []
        balance = principal
        for period in range(1, math.ceil(years * frequency) + 1):
            interest = balance * periodic_rate
            balance += interest
            schedule.append({"period": period, "balance": round(balance, 2), "interest": round(interest, 2)})
        result["schedule"] = schedule
    return result


async def _handle_convert_currency(arguments: Dict[str, Any]) -> Dict[str, Any]:
    amount = arguments["amount"]
    source = arguments["from"].upper()
    target = arguments["to"].upper()

    for code in (source, target):
        if code not in RATES_PER_USD:
            return {
                "amount": amount,
                "from": source,
                "to": target,
                "note": f"Currency {code} not supported. Supported currencies: {', '.join(RATES_PER_USD)}",
            }

    rate = RATES_PER_USD[target] / RATES_PER_USD[source]
    return {
        "amount": amount,
        "from": source,
        "to": target,
        "rate": rate,
        "converted": amount * rate,
        "note": (
            "Exchange rates are approximate estimates, not real-time rates. "
            "For financial transactions, use a real-time source."
        ),
    }


async def _handle_loan(arguments: Dict[str, Any]) -> Dict[str, Any]:
    principal = arguments["principal"]
    annual_rate = arguments["annualRate"]
    years = arguments["years"]
    if principal <= 0:
        raise ValueError("Principal must be positive")
    if annual_rate < 0:
        raise ValueError("Rate cannot be negative")
    if years <= 0:
        raise ValueError("Years must be positive")

    monthly_rate = annual_rate / 12
    payments = years * 12
    if annual_rate == 0:
        monthly_payment = principal / payments
    else:
        growth = (1 + monthly_rate) ** payments
        monthly_payment = principal * monthly_rate * growth / (growth - 1)

    total_payment = monthly_payment * payments
    result: Dict[str, Any] = {
        "principal": principal,
        "annualRate": annual_rate,
        "years": years,
        "monthlyPayment": monthly_payment,
        "totalPayment": total_payment,
        "totalInterest": total_payment - principal,
    }

    if arguments["showSchedule"] and payments <= MAX_LOAN_SCHEDULE_PAYMENTS:
        schedule = []
        balance = principal
        for month in range(1, math.ceil(payments) + 1):
            interest = balance * monthly_rate
            principal_part = monthly_payment - interest
            balance = max(0.0, balance - principal_part)
            schedule.append(
                {
                    "month": month,
                    "payment": monthly_payment,
                    "principal": principal_part,
                    "interest": interest,
                    "balance": round(balance, 2),
                }
            )
        result["schedule"] = schedule
    return result


def build_tools() -> List[RegisteredTool]:
    numbers = {"type": "array", "items": {"type": "number"}}
    show_schedule = {"type": "boolean", "default": False, "description": "Include a period-by-period schedule"}

    return [
        define_tool(
            "calculate_statistics",
            "Calculate descriptive statistics for a dataset: mean, median, mode, "
            "standard deviation, variance, quartiles and IQR outliers",
            object_schema(
                {
                    "data": {**numbers, "description": "Numbers to analyze"},
                    "sample": {
                        "type": "boolean",
                        "default": False,
                        "description": "Use sample variance (n-1) instead of population (n)",
                    },
                },
                required=["data"],
            ),
            _handle_statistics,
        ),
        define_tool(
            "linear_regression",
            "Fit a least-squares line to paired (x, y) data and report correlation",
            object_schema(
                {
                    "x": {**numbers, "description": "X values (independent variable)"},
                    "y": {**numbers, "description": "Y values (dependent variable)"},
                    "predict": {**numbers, "description": "X values to predict Y for"},
                },
                required=["x", "y"],
            ),
            _handle_linear_regression,
        ),
        define_tool(
            "calculate_compound_interest",
            "Calculate compound interest for a compounding frequency, optionally with a schedule",
            object_schema(
                {
                    "principal": number("Initial investment amount (positive)"),
                    "rate": number("Annual interest rate as decimal (e.g., 0.05 for 5%)"),
                    "time": number("Time period in years"),
                    "frequency": number(
                        "Compounding frequency per year (1, 2, 4, 12, 365)", default=12
                    ),
                    "showSchedule": show_schedule,
                },
                required=["principal", "rate", "time"],
            ),
            _handle_compound_interest,
        ),
        define_tool(
            "convert_currency",
            "Convert between currencies using approximate fixed exchange rates (not real-time)",
            object_schema(
                {
                    "amount": number("Amount to convert"),
                    "from": string("Source currency code (e.g., USD, EUR, THB)", default="USD"),
                    "to": string("Target currency code (e.g., USD, EUR, THB)"),
                },
                required=["amount", "to"],
            ),
            _handle_convert_currency,
        ),
        define_tool(
            "calculate_loan",
            "Calculate loan monthly payment and total interest, optionally with an amortization schedule",
            object_schema(
                {
                    "principal": number("Loan amount"),
                    "annualRate": number("Annual interest rate as decimal (e.g., 0.05 for 5%)"),
                    "years": number("Loan term in years"),
                    "showSchedule": show_schedule,
                },
                required=["principal", "annualRate", "years"],
            ),
            _handle_loan,
        ),
    ]
