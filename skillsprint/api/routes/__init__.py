from . import courses, personalized_paths

__all__ = ["courses", "personalized_paths"]
