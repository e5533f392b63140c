#!/usr/bin/env python3
"""
Signup Funnel Demo
==================

Replays the pricing page funnel (view_pricing → select_plan → sign_up →
begin_checkout → purchase) through GoogleAnalyticsTracker.

  - With GA_MEASUREMENT_ID unset, every event is only logged.
  - With it set, the gtag script is loaded; if it cannot be fetched within
    GA_LOAD_TIMEOUT seconds, events go to the collect endpoint directly.

Run:
    GA_MEASUREMENT_ID=G-XXXXXXX python examples/signup_funnel_demo.py
"""

from __future__ import annotations

import asyncio
import logging

from ga_analytics import AnalyticsConfig, GoogleAnalyticsTracker, StandardEvent

PLAN = {"plan_id": "pro", "price": 29}


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    tracker = GoogleAnalyticsTracker(AnalyticsConfig.from_env())
    tracker.initialize()

    # Issued before readiness is known: buffered
    tracker.track_event(StandardEvent.VIEW_PRICING.value, {"plan_id": PLAN["plan_id"]})
    tracker.track_event(StandardEvent.SELECT_PLAN.value, {"plan_id": PLAN["plan_id"]})

    state = await tracker.wait_until_resolved()
    print(f"\n   Transport resolved: {state.value}\n")

    tracker.track_event(
        StandardEvent.SIGN_UP.value,
        {"method": "email", "plan_id": PLAN["plan_id"]},
    )
    tracker.track_event(
        StandardEvent.BEGIN_CHECKOUT.value,
        {"plan_id": PLAN["plan_id"], "value": PLAN["price"], "currency": "USD"},
    )
    tracker.track_event(
        StandardEvent.PURCHASE.value,
        {"plan_id": PLAN["plan_id"], "value": PLAN["price"], "currency": "USD"},
    )
    tracker.track_event(
        StandardEvent.FEATURE_USE.value,
        {"feature_id": "export", "logged_in": True, "referrer": None},
    )

    await tracker.close()


if __name__ == "__main__":
    asyncio.run(main())
