"""HTTP routers for the users and files services."""
