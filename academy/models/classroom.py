# models/classroom.py
"""Value types shared by schedules and sessions: rooms and weekdays."""


class Classroom:
    """Rooms a schedule or session can be booked into."""
    AULA_PORTAL1 = 'aula_portal1'
    AULA_PORTAL2 = 'aula_portal2'
    AULA_VIRTUAL = 'aula_virtual'

    ALL = (AULA_PORTAL1, AULA_PORTAL2, AULA_VIRTUAL)
    PHYSICAL = (AULA_PORTAL1, AULA_PORTAL2)

    DISPLAY_NAMES = {
        AULA_PORTAL1: 'Aula Portal 1',
        AULA_PORTAL2: 'Aula Portal 2',
        AULA_VIRTUAL: 'Aula Virtual',
    }

    DEFAULT_CAPACITY = {
        AULA_PORTAL1: 24,
        AULA_PORTAL2: 24,
        AULA_VIRTUAL: 0,
    }

    @classmethod
    def is_valid(cls, value):
        return value in cls.ALL

    @classmethod
    def is_virtual(cls, value):
        return value == cls.AULA_VIRTUAL

    @classmethod
    def display_name(cls, value):
        return cls.DISPLAY_NAMES.get(value, value)

    @classmethod
    def capacity_for(cls, value, capacities=None):
        """In-person seats of a room; the virtual room has none."""
        if cls.is_virtual(value):
            return 0
        capacities = capacities or cls.DEFAULT_CAPACITY
        return capacities.get(value, 0)


class DayOfWeek:
    MONDAY = 'monday'
    TUESDAY = 'tuesday'
    WEDNESDAY = 'wednesday'
    THURSDAY = 'thursday'
    FRIDAY = 'friday'
    SATURDAY = 'saturday'
    SUNDAY = 'sunday'

    # Ordered to match date.weekday()
    ALL = (MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY)

    @classmethod
    def is_valid(cls, value):
        return value in cls.ALL

    @classmethod
    def from_date(cls, value):
        return cls.ALL[value.weekday()]

    @classmethod
    def index(cls, value):
        return cls.ALL.index(value)
