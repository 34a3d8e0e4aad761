"""
# Vaccination Tracker

Core library for tracking child vaccinations against national vaccine calendars.

## Domain Overview

- **Calendars**: Each supported country has a calendar of mandatory and recommended
  vaccines. USA and China ship with the package; other countries are downloaded once and
  cached locally for 30 days.
- **Records**: Adding a child derives one vaccination record per dose from the child's date
  of birth. Records are classified as upcoming, overdue or completed against today.
- **Reminders**: Reminder dates are planned a configurable number of days before each dose.

## Usage Example

```python
from datetime import date

from vaccination_tracker.container import build_tracker
from vaccination_tracker.models import Country

tracker = build_tracker()
child, records = await tracker.add_child("Mia", date(2023, 6, 15), Country.USA)
overdue = await tracker.overdue(child.id)
```
"""

__version__ = "0.1.0"
