"""Data access subpackage - catalog lookups and order stores."""
