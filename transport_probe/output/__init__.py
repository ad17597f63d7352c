from transport_probe.output.output_log import OutputLog, render_verdicts

__all__ = ["OutputLog", "render_verdicts"]
