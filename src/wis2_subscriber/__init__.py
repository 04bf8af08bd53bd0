"""
WIS2 notification subscriber.

Subscribes to an MQTT topic, decodes WIS2 notification messages and
downloads every canonical link into a local directory.
"""

__version__ = "0.1.0"
