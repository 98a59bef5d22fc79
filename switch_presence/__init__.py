"""Switch Presence: Nintendo Switch title feed to Discord Rich Presence.

Quickstart::

    from switch_presence.config import PresenceConfig
    from switch_presence.session import SessionController

    controller = SessionController(PresenceConfig(host="192.168.1.50"))
    exit_code = await controller.run()
"""

__version__ = "1.0.0"
