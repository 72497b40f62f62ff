"""Examples directory.

This directory exists so that the examples embedded in the README are linted along with the rest
of the code.
"""
