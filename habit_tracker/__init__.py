"""Habit tracker backend: recurring tasks, completion history and countdown timers."""
