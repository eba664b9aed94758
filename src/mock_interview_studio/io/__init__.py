"""
I/O interfaces for running mock interviews.
"""

from mock_interview_studio.io.text_interface import InterviewInterface, TextInterface

__all__ = ["InterviewInterface", "TextInterface"]
