"""Configuration loading for the subscriber.

Usage:
    >>> from wis2_subscriber.config import load_config
    >>> config = load_config(args)
    >>> config.broker_address().port
    8883
"""

from wis2_subscriber.config.config import (
    BROKER_SCHEMES,
    BrokerAddress,
    SubscriberConfig,
    env_var_name,
    load_config,
    load_yaml,
)

__all__ = [
    "BROKER_SCHEMES",
    "BrokerAddress",
    "SubscriberConfig",
    "env_var_name",
    "load_config",
    "load_yaml",
]
