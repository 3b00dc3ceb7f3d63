"""HTTP routers for the task backend."""
