"""MathStreak backend: lesson submissions, streaks and adaptive recommendations."""
