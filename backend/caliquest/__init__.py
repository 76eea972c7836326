"""
CaliQuest backend: gamified calisthenics training with linear map and level progression.
"""

__version__ = "1.0.0"
