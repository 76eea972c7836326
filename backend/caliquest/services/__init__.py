"""
Domain services for CaliQuest.

- content: lookups, ordering and per-kind deletes for maps, levels, exercises
- progression: unlock rules and completion recording
"""
