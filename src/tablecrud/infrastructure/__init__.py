"""Infrastructure layer for TableCrud."""
