from transport_probe.session.session_controller import SessionController, SessionState

__all__ = ["SessionController", "SessionState"]
