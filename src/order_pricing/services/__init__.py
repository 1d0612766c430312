"""Services subpackage - caller-facing pricing facade."""
