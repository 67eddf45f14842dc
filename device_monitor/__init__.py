"""
Device Status Monitor

Decides, on each scheduled pass, whether to alert a unit's owner that the
unit went offline, is low on battery, or came back online.
"""

__version__ = "1.0.0"
