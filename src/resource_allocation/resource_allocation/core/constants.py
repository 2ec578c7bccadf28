"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Fixed approximation of business days in a month. Stored history values were
# computed with it, so it must not be replaced by real calendar math.
WORKING_DAYS_PER_MONTH = 22

# Open-ended allocations are sized over this many calendar days after start.
OPEN_ENDED_PERIOD_DAYS = 7

MAX_ALLOCATION_PERCENTAGE = 100
DEFAULT_MONTHLY_CAPACITY_HOURS = 160
DEFAULT_HISTORY_LIMIT = 200

# Column limits in schema.sql: allocated_percentage DECIMAL(9,2), allocated_hours INT.
MAX_STORED_PERCENTAGE = 9999999.99
MAX_STORED_HOURS = 2147483647
