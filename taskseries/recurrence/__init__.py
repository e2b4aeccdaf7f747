"""Recurrence rules for taskseries."""
