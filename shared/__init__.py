"""Configuration, observability, HTTP errors and models shared by all services."""
