"""Stream, polling and coordination for the live queue view."""
