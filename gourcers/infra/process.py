"""
Subprocess plumbing for gourcers.

ManagedProcess owns one spawned collaborator and drains its stderr on a
background thread, so a child that writes a lot of diagnostics can never
stall on a full pipe.

ProcessPipeline wires two collaborators together, the producer's stdout
feeding the consumer's stdin:

    producer (gource -o -)  --copy thread-->  consumer (ffmpeg -i -)

The copy thread forwards bytes as soon as they are readable, so the pipe
between the two processes is the only buffer and the producer is throttled
by the consumer. When the producer's stdout reaches EOF the copy thread
closes the consumer's stdin, which is how the consumer learns the stream
is complete.
"""

import logging
import os
import shlex
import subprocess
import threading
from typing import IO, Callable, Optional, Sequence

from .errors import GourcersError, ProcessFailedError, ToolMissingError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class ManagedProcess:
    """
    A spawned collaborator with its stderr captured in the background.

    Example:
        proc = ManagedProcess(["gource", "--output-custom-log", "-", path],
                              stdout=subprocess.PIPE)
        data = proc.stdout.read()
        if proc.wait() != 0:
            print(proc.stderr_text)
    """

    def __init__(
        self,
        args: Sequence[str],
        stdin=None,
        stdout=None,
        name: Optional[str] = None
    ):
        self.args = [str(a) for a in args]
        self.name = name or os.path.basename(self.args[0])

        logger.debug(f"spawning {self.name}: {shlex.join(self.args)}")
        try:
            self.proc = subprocess.Popen(
                self.args,
                stdin=stdin,
                stdout=stdout,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ToolMissingError([self.args[0]]) from e

        self._stderr = bytearray()
        self._stderr_thread = threading.Thread(
            target=self._drain_stderr,
            name=f"{self.name}-stderr",
            daemon=True,
        )
        self._stderr_thread.start()

    def _drain_stderr(self) -> None:
        stream = self.proc.stderr
        try:
            for chunk in iter(lambda: stream.read1(CHUNK_SIZE), b''):
                self._stderr.extend(chunk)
        finally:
            stream.close()

    @property
    def stdin(self) -> Optional[IO[bytes]]:
        return self.proc.stdin

    @property
    def stdout(self) -> Optional[IO[bytes]]:
        return self.proc.stdout

    @property
    def stderr_text(self) -> str:
        """Everything the process wrote to stderr (complete after wait())."""
        return bytes(self._stderr).decode('utf-8', errors='replace')

    def wait(self) -> int:
        code = self.proc.wait()
        self._stderr_thread.join()
        logger.debug(f"{self.name} exited with status {code}")
        return code

    def stop(self) -> None:
        """Kill the process if it is still running, without reaping it."""
        if self.proc.poll() is None:
            logger.debug(f"killing {self.name}")
            self.proc.kill()

    def kill(self) -> None:
        """Kill the process if it is still running and reap it."""
        self.stop()
        self.wait()

    def __enter__(self) -> 'ManagedProcess':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.kill()


class StreamCopy(threading.Thread):
    """
    Forward ``src`` into ``dst`` until EOF, then close ``dst``.

    If ``dst`` breaks (the reader went away) the error is recorded and
    ``on_broken`` is called once, typically to stop the writer. ``src`` is
    still read to EOF and discarded, so the writer never blocks on a pipe
    nobody reads.
    """

    def __init__(
        self,
        src: IO[bytes],
        dst: IO[bytes],
        name: str = "stream-copy",
        on_broken: Optional[Callable[[], None]] = None
    ):
        super().__init__(name=name, daemon=True)
        self.src = src
        self.dst = dst
        self.on_broken = on_broken
        self.bytes_copied = 0
        self.error: Optional[OSError] = None

    def run(self) -> None:
        try:
            for chunk in iter(lambda: self.src.read1(CHUNK_SIZE), b''):
                if self.error is not None:
                    continue
                try:
                    self.dst.write(chunk)
                    self.dst.flush()
                    self.bytes_copied += len(chunk)
                except OSError as e:
                    logger.debug(f"{self.name}: destination closed: {e}")
                    self.error = e
                    if self.on_broken is not None:
                        self.on_broken()
        except OSError as e:
            self.error = self.error or e
        finally:
            self._close_dst()
            self.src.close()

    def _close_dst(self) -> None:
        try:
            self.dst.close()
        except OSError as e:
            self.error = self.error or e


class BytesFeed(threading.Thread):
    """Write ``data`` into ``dst`` and close it."""

    def __init__(self, data: bytes, dst: IO[bytes], name: str = "bytes-feed"):
        super().__init__(name=name, daemon=True)
        self.data = data
        self.dst = dst
        self.error: Optional[OSError] = None

    def run(self) -> None:
        try:
            self.dst.write(self.data)
        except OSError as e:
            self.error = e
        finally:
            try:
                self.dst.close()
            except OSError as e:
                self.error = self.error or e


class ProcessPipeline:
    """
    Two collaborators joined by a streaming pipe.

    The consumer is spawned first so it is ready to read before the
    producer writes anything. Failure rules:

    - consumer stops reading: the producer is killed at once and the
      consumer's failure (with its stderr) is raised, or GourcersError if
      it exited 0
    - producer exits non-zero: the consumer is killed and the producer's
      failure (with its stderr) is raised; the consumer is never reported
      successful
    - consumer exits non-zero: its failure (with its stderr) is raised

    Example:
        pipeline = ProcessPipeline(
            ["gource", "-o", "-", "sorted.txt"],
            ["ffmpeg", "-f", "image2pipe", "-i", "-", "out.mp4"],
        )
        pipeline.run()
    """

    def __init__(
        self,
        producer: Sequence[str],
        consumer: Sequence[str],
        producer_name: Optional[str] = None,
        consumer_name: Optional[str] = None,
        consumer_stdout=None,
    ):
        self.producer_args = list(producer)
        self.consumer_args = list(consumer)
        self.producer_name = producer_name
        self.consumer_name = consumer_name
        self.consumer_stdout = consumer_stdout
        self.bytes_copied = 0

    def run(self, input_data: Optional[bytes] = None) -> int:
        """
        Run both processes to completion.

        Args:
            input_data: Bytes written to the producer's stdin, if any

        Returns:
            Number of bytes forwarded from producer to consumer

        Raises:
            ToolMissingError: a binary could not be spawned
            ProcessFailedError: either process exited non-zero
            GourcersError: the stream between them broke
        """
        consumer = ManagedProcess(
            self.consumer_args,
            stdin=subprocess.PIPE,
            stdout=self.consumer_stdout,
            name=self.consumer_name,
        )

        try:
            producer = ManagedProcess(
                self.producer_args,
                stdin=subprocess.PIPE if input_data is not None else None,
                stdout=subprocess.PIPE,
                name=self.producer_name,
            )
        except BaseException:
            consumer.stdin.close()
            consumer.kill()
            raise

        feed = None
        if input_data is not None:
            feed = BytesFeed(input_data, producer.stdin, name=f"{producer.name}-stdin")
            feed.start()

        copy = StreamCopy(
            producer.stdout,
            consumer.stdin,
            name=f"{producer.name}->{consumer.name}",
            on_broken=producer.stop,
        )
        copy.start()

        producer_code = producer.wait()
        # producer is gone, so its stdout hits EOF and the copy closes the
        # consumer's stdin
        copy.join()
        if feed is not None:
            feed.join()
        self.bytes_copied = copy.bytes_copied

        if copy.error is not None:
            # the consumer went away; the producer was stopped, not failed
            consumer_code = consumer.wait()
            if consumer_code != 0:
                raise ProcessFailedError(consumer.name, consumer_code, consumer.stderr_text)
            raise GourcersError(
                f"failed to stream {producer.name} output into {consumer.name}: {copy.error}"
            )

        if producer_code != 0:
            consumer.kill()
            raise ProcessFailedError(producer.name, producer_code, producer.stderr_text)

        consumer_code = consumer.wait()
        if consumer_code != 0:
            raise ProcessFailedError(consumer.name, consumer_code, consumer.stderr_text)

        if feed is not None and feed.error is not None:
            raise GourcersError(f"failed to write input to {producer.name}: {feed.error}")

        logger.debug(f"streamed {self.bytes_copied} bytes from {producer.name} to {consumer.name}")
        return self.bytes_copied
