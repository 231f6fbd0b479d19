"""Runtime dispatch of provider RPCs to resolved handlers."""
