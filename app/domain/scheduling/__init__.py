"""
Scheduling Domain

Places jobs from the bench onto the production calendar and maps the
scheduled ranges onto the month grid.

- time_calculator.py  day boundaries and inclusive day counts
- duration.py         suggested duration from job value
- grid.py             pure mapping of date ranges onto grid cells
- service.py          drop / move / resize / unschedule engine
- router.py           /schedule endpoints
"""
