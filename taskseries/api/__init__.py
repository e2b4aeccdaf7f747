"""HTTP API for taskseries."""
