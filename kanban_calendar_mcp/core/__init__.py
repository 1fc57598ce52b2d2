"""Board parsing and editing."""
