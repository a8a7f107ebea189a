"""
Data Plane - MQTT publishing with acknowledgement
"""
from .plane import MQTTDataPlane

__all__ = ["MQTTDataPlane"]
