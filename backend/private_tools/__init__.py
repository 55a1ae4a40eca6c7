"""Private Tools backend: role-based access control for the family tool suite."""
