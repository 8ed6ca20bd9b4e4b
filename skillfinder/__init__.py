"""
SkillFinder - find colleagues by skill, department and office.
"""

__version__ = "0.1.0"
