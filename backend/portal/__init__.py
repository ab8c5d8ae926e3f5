"""Student portal backend: grades, registrations and course catalog."""
