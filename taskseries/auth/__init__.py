"""Authentication helpers for taskseries."""
