import re

from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    # Convention: class 'EntrySummary' becomes table 'entry_summary'
    # unless the model sets __tablename__ explicitly.
    @declared_attr.directive
    def __tablename__(cls) -> str:
        # Converts CamelCase to snake_case
        return re.sub(r'(?<!^)(?=[A-Z])', '_', cls.__name__).lower()
