from campus_timetable.models.activity_log import ActivityLog  # noqa: F401
from campus_timetable.models.school_class import SchoolClass  # noqa: F401
from campus_timetable.models.timetable import TimetableEntry, TimetableGeneration  # noqa: F401
from campus_timetable.models.user import User, UserRole  # noqa: F401
from campus_timetable.models.venue import Venue  # noqa: F401
from campus_timetable.models.venue_booking import VenueBooking  # noqa: F401
