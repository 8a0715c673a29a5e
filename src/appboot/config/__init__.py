"""Configuration: YAML sources, property overlay and bean materialization."""

from appboot.config.beans import BeanDescriptor, describe, ignore_unknown, to_config_tree
from appboot.config.factory import ConfigurationFactory
from appboot.config.overlay import overlay_properties, overlay_variables
from appboot.config.properties import (
    PROPERTY_PREFIX,
    PropertyStore,
    clear_property,
    get_property,
    set_property,
    system_properties,
)
from appboot.config.source import ConfigTree, load_config, load_configs, merge_trees

__all__ = [
    "PROPERTY_PREFIX",
    "BeanDescriptor",
    "ConfigTree",
    "ConfigurationFactory",
    "PropertyStore",
    "clear_property",
    "describe",
    "get_property",
    "ignore_unknown",
    "load_config",
    "load_configs",
    "merge_trees",
    "overlay_properties",
    "overlay_variables",
    "set_property",
    "system_properties",
    "to_config_tree",
]
