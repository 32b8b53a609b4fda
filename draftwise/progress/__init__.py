"""Writing progress: weekly goal, daily-login streak, and error-rate trend."""
