from app.db.base_class import Base
from app.db.session import engine

# import models so SQLAlchemy registers them
from app.models import class_statistics, classroom, profile, school, student_enrollment, student_progress  # noqa: F401


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
