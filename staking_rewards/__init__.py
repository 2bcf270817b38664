"""Reward pool and mining account state, reward arithmetic, derived addresses and instruction encoding."""

__version__ = "0.1.0"