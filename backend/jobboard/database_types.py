"""
Custom SQLAlchemy types.
"""
import enum

from sqlalchemy import TypeDecorator, SmallInteger


class IntEnumType(TypeDecorator):
    """
    Stores an IntEnum as a small integer; Python code only sees enum members.
    Unknown integers raise on load.
    """
    impl = SmallInteger
    cache_ok = True

    def __init__(self, enum_class: type[enum.IntEnum], *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return int(self.enum_class(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return self.enum_class(value)
