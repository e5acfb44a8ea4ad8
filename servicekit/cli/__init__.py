"""CLI module for servicekit."""
