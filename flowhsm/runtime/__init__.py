"""
Runtime package: chart structure, context, event queue, service invocation
and the interpreter.
"""
