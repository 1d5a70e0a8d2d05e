"""SkillTrack: mentorship programs, task submissions and reviews."""

__version__ = "0.1.0"
