import logging


class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[38;21m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33;1m",
        logging.ERROR: "\033[31;1m",
        logging.CRITICAL: "\033[31;1m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        log_color = self.COLORS.get(record.levelno, self.RESET)
        log_fmt = f"%(asctime)s | {log_color}%(levelname)8s{self.RESET} | %(name)s: %(message)s"
        formatter = logging.Formatter(log_fmt, datefmt="%H:%M:%S")
        return formatter.format(record)


class ColorLogHandler(logging.StreamHandler):
    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(ColorFormatter())


def setup_logging(verbose: bool = False) -> None:
    """Send all client logging to a colored console handler."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(handler, ColorLogHandler) for handler in root.handlers):
        root.addHandler(ColorLogHandler())
    # httpx logs every request at INFO and the viewer polls every few seconds.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
