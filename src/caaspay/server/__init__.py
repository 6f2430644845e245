"""ASGI request pipeline and server runners."""
