"""
Angle relay - browser operators to one actuator controller, closed loop.

Layers:
- control: PID engine
- session: controller authentication
- comm: secure framing and command downlinks
- relay: message routing and observer broadcast
- web: aiohttp server
"""

__version__ = "0.1.0"
