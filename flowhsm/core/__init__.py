"""
Core package: events, state nodes, transitions, guards, actions, hooks and
definition validation.
"""
