"""
Photo Service

Profile photos, voice prompts, content moderation and face verification
for the dating app.
"""

__version__ = "0.1.0"
