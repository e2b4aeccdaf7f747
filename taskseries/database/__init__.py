"""Task store access for taskseries."""
