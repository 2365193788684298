from .log_sinks import FanOutSink, LoggingSink, LogSink, MemorySink

__all__ = ["FanOutSink", "LoggingSink", "LogSink", "MemorySink"]
