"""MQTT broker session management."""

from wis2_subscriber.broker.session import BrokerSession, SessionState

__all__ = ["BrokerSession", "SessionState"]
