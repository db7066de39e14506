"""
Shared fixtures: a tiny LIRR-like GTFS snapshot written to tmp_path.

Calendar (2026):
  WKDY   Mon–Fri, removed on 2026-11-25 (Wed)
  WKND   Sat–Sun, added on 2026-10-21 (Wed)
  NIGHT  every day
  XTRA   no calendar row, added on 2026-10-19 only

2026-10-19 is a Monday.
"""

from pathlib import Path

import pytest

from ingestion.gtfs_static import load_static_gtfs

STOPS = """stop_id,stop_name
PENN,Penn Station
PENN_B,Penn Station
MIN,Mineola
JAM,Jamaica
HIC,Hicksville
FHL,Forest Hills
"""

TRIPS = """route_id,service_id,trip_id
R1,WKDY,T815
R1,WKDY,T845
R1,NIGHT,T2510
R1,WKDY,TREV
R1,WKND,TSAT
"""

# T815 rows deliberately out of sequence order
STOP_TIMES = """trip_id,arrival_time,departure_time,stop_id,stop_sequence
T815,08:35:00,08:36:00,JAM,2
T815,08:15:00,08:15:00,PENN,1
T815,08:50:00,08:50:00,MIN,3
T845,08:45:00,08:45:00,PENN_B,1
T845,09:20:00,09:20:00,MIN,2
T2510,25:10:00,25:10:00,PENN,1
T2510,25:45:00,25:45:00,MIN,2
TREV,08:15:00,08:15:00,MIN,1
TREV,08:50:00,08:50:00,PENN,2
TSAT,08:17:00,08:17:00,PENN_B,1
TSAT,08:55:00,08:55:00,MIN,2
"""

CALENDAR = """service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date
WKDY,1,1,1,1,1,0,0,20260101,20261231
WKND,0,0,0,0,0,1,1,20260101,20261231
NIGHT,1,1,1,1,1,1,1,20260101,20261231
"""

CALENDAR_DATES = """service_id,date,exception_type
WKDY,20261125,2
WKND,20261021,1
XTRA,20261019,1
"""


def write_gtfs(directory: Path, calendar: bool = True, **overrides: str) -> Path:
    """Write the fixture feed; overrides replace a file by name (e.g. stops="...")."""
    directory.mkdir(parents=True, exist_ok=True)
    files = {
        "stops.txt": STOPS,
        "trips.txt": TRIPS,
        "stop_times.txt": STOP_TIMES,
    }
    if calendar:
        files["calendar.txt"] = CALENDAR
        files["calendar_dates.txt"] = CALENDAR_DATES
    for key, content in overrides.items():
        files[f"{key}.txt"] = content
    for name, content in files.items():
        (directory / name).write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def gtfs_dir(tmp_path):
    return write_gtfs(tmp_path / "gtfs")


@pytest.fixture
def index(gtfs_dir):
    return load_static_gtfs(gtfs_dir)
