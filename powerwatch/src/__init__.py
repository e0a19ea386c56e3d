"""
Inverter and battery telemetry daemon.

Decodes the hybrid inverter's Bluetooth LE characteristics and the battery
management system's CAN frames (read through a USB-CAN serial adapter),
buffers the readings locally and writes them to InfluxDB 2.  The latest state
is also served as JSON over HTTP.

CHANGELOG:
- 2026-10-09: Initial creation (STORY-001)

TODO:
- None
"""
