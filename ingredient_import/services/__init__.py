"""Pipeline services: mapping, validation, session orchestration and reporting."""
