import os
from datetime import time

HOTEL_TIMEZONE = os.environ.get("HOTEL_TIMEZONE", "UTC")

# one transaction holds a night lock per night, twice over on a room move
MAX_STAY = 45

# hotel-local wall-clock times
CONFIRMATION_CUTOFF = time(19, 0)
STANDARD_CHECKOUT_TIME = time(12, 0)
DAILY_SWEEP_TIME = time(19, 0)

MIN_BULK_ROOMS = 2
# (minimum room count, discount rate), highest tier first
BULK_DISCOUNT_TIERS = (
    (10, 0.30),
    (5, 0.20),
    (3, 0.15),
    (MIN_BULK_ROOMS, 0.10),
)

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30

SWEEP_LOCK_NAME = "daily-sweep"
SWEEP_LOCK_TTL_SECONDS = 15 * 60
