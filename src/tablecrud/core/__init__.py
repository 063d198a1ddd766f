"""Core modules for TableCrud (configuration, logging, context, errors)."""
