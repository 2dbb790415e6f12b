"""
connectn: strategies, search and reinforcement learning for connect-N.
"""

__version__ = "0.1.0"
