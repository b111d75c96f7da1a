"""autocaption -- timeline audio to captions via an out-of-process speech recognizer."""

__version__ = '0.1.0'
