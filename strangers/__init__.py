"""Strangers: anonymous 1:1 chat matchmaking relay."""
