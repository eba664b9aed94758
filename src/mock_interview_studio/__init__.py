"""
Mock Interview Studio.

Video mock interviews: every answer gets a spoken, animated interviewer reply,
recorded turn by turn in a replayable session history.
"""

__version__ = "0.1.0"
