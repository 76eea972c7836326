"""
Pydantic request/response schemas for CaliQuest.
"""
