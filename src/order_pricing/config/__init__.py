"""Configuration subpackage - settings loaded from the environment."""
