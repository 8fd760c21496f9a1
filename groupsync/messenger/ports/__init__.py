# =============================================================================
# File: groupsync/messenger/ports/__init__.py
# Description: Ports directory for Messenger domain
# =============================================================================
# EMPTY - use direct imports:
#   from groupsync.messenger.ports.protocol_client_port import ProtocolClientPort
#   from groupsync.messenger.ports.local_store_port import LocalStorePort
#   from groupsync.messenger.ports.projection_handler_port import ProjectionHandlerPort
