# Models package init: importing it registers every table on Base.metadata.
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course

__all__ = ["Bootcamp", "Course"]
