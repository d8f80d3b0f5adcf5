"""SSO bridge service.

Exchanges signed tokens issued by a partner application for local user
sessions and sends the user on to plan selection.
"""

__version__ = "0.1.0"
