import inspect
import logging
import sys
import time

import sentry_sdk

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%d-%b %H:%M:%S"


class Logger:
    def __init__(
        self,
        debug=False,
        level: int = logging.INFO,
        log_file: str = None,
        sentry_dsn: str = None,
        ssdk: sentry_sdk = None,
        stream=None,
    ):
        """Initializes the logger class

        Args:
            debug (bool, optional): Show debugging. Defaults to False.
            level (int, optional): The logging level when not debugging. Defaults to INFO.
            log_file (str, optional): Also append log records to this file. Defaults to None.
            sentry_dsn (str, optional): Report errors to this sentry project. Defaults to None.
            ssdk (sentry_sdk, optional): An already initialized sentry_sdk. Defaults to None.
            stream (optional): Where ``print`` writes to. Defaults to stdout.
        """
        self.__last_print = None
        self.DEBUG = debug
        self.logging = logging
        self.stream = stream

        handlers = [logging.StreamHandler(sys.stderr)]
        if log_file is not None:
            handlers.append(
                logging.FileHandler(log_file, mode="a", encoding="utf-8", delay=True)
            )

        logging.basicConfig(
            level=level if not self.DEBUG else logging.DEBUG,
            format=LOG_FORMAT,
            datefmt=LOG_DATEFMT,
            handlers=handlers,
            force=True,
        )

        if self.DEBUG:
            self.logging.info("Debugging enabled")

        if sentry_dsn is not None and ssdk is None:
            sentry_sdk.init(
                dsn=sentry_dsn,
                traces_sample_rate=1.0,
            )
            self.sentry_sdk = sentry_sdk
        elif ssdk is not None:
            self.sentry_sdk = ssdk
        else:
            self.sentry_sdk = None

    @staticmethod
    def stack_trace(stack):
        """Returns the calling module and function, i.e. ``connector.status_raw``"""
        return (
            stack[1].filename.replace("\\", "/").split("/")[-1].split(".")[0]
            + "."
            + f"{stack[1].function}"
        )

    def info(self, message):
        """Same level as print but no console output"""
        message = f"[{self.stack_trace(inspect.stack())}] {message}"
        self.logging.info(message)

    def debug(self, *args):
        msg = " ".join([str(arg) for arg in args])
        msg = f"[{self.stack_trace(inspect.stack())}] {msg}"
        self.logging.debug(msg)

    def warning(self, message):
        message = f"[{self.stack_trace(inspect.stack())}] {message}"
        self.logging.warning(message)

    def error(self, *message, exception: Exception = None):
        """Log an error, and report ``exception`` to sentry if it is set up"""
        message = " ".join([str(arg) for arg in message])
        message = f"[{self.stack_trace(inspect.stack())}] {message}"
        self.logging.error(message)

        if exception is not None and self.sentry_sdk is not None:
            self.sentry_sdk.capture_exception(exception)

    def print(self, *args, **kwargs):
        """Print to the console, skipping exact repeats of the last message"""
        msg = " ".join([str(arg) for arg in args])

        if self.__last_print != msg:  # prevent duplicate messages and spamming the console
            self.__last_print = msg
            print(msg, file=self.stream or sys.stdout, **kwargs)

    async def async_timer(self, func: callable, *args, **kwargs):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"Function {func.__name__} is not a coroutine")

        start = time.perf_counter()
        if self.sentry_sdk is not None:
            with self.sentry_sdk.start_transaction(
                name=f"{func.__name__}", op=f"{func.__name__}"
            ):
                res = await func(*args, **kwargs)
        else:
            res = await func(*args, **kwargs)
        end = time.perf_counter()

        tDelta = self.auto_range_time(end - start)
        self.debug(f"(ASYNC) Function {func.__name__} took {tDelta}")
        return res

    @staticmethod
    def auto_range_time(seconds: float) -> str:
        """
        Returns a time string for a given number of seconds

        Args:
            seconds (float): The number of seconds

        Returns:
            str: The time string
        """

        units = {
            "hr": str(int(seconds // 3600)),
            "min": str(int(seconds // 60)),
            "s": str(int(seconds)),
            "ms": str(int(seconds * 1000)),
            "us": str(int(seconds * 1000000)),
            "ns": str(int(seconds * 1000000000)),
        }

        best = ("ns", units["ns"])
        units = sorted(units.items(), key=lambda x: len(x[1]))
        for unit in units:
            if unit[1] != "0":
                best = unit
                break

        return f"{best[1]} {best[0]}"
