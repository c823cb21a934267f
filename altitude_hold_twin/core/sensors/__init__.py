"""
Altitude sensor models (noise, sample-and-hold, quantization).
"""

from .sensor_models import AltitudeSensor, SensorModel, create_altitude_sensor

__all__ = ['AltitudeSensor', 'SensorModel', 'create_altitude_sensor']
