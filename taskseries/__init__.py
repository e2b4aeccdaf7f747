"""taskseries: recurring task lifecycle management."""
