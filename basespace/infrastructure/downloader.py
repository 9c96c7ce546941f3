import aiohttp
import asyncio
import logging
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from basespace.domain.exceptions import TransferError
from basespace.domain.result import Failure, Result, Success
from basespace.infrastructure.basespace_client import ApiRequest

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
# No total limit: FASTQ files routinely take longer than any fixed deadline
DOWNLOAD_TIMEOUT = aiohttp.ClientTimeout(total=None, connect=10, sock_read=300)

SinkOpener = Callable[[Path], BinaryIO]


def open_binary(destination: Path) -> BinaryIO:
    return open(destination, "wb")


class StreamingDownloader:
    """
    Streams a remote resource into a local sink chunk by chunk, so memory use
    stays bounded by the chunk size whatever the file size.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self.chunk_size = chunk_size

    async def download(
        self,
        session: aiohttp.ClientSession,
        request: ApiRequest,
        destination: Union[str, Path],
        open_sink: Optional[SinkOpener] = None,
    ) -> Result[Path]:
        """
        Downloads ``request`` into ``destination``.

        The sink is opened once the response status is known to be good and is
        closed on every exit path. A partially written destination is left in
        place on failure.

        Args:
            session (aiohttp.ClientSession): Session used for the request.
            request (ApiRequest): Authenticated request for the content.
            destination (Union[str, Path]): Where the content is written.
            open_sink (Optional[SinkOpener]): Opens the sink for ``destination``,
                defaults to a binary file.

        Returns:
            Result[Path]: The destination, or a TransferError carrying the cause.
        """
        destination = Path(destination)
        opener = open_sink or open_binary
        written = 0

        try:
            async with session.get(request.url, params=request.params, timeout=DOWNLOAD_TIMEOUT) as response:
                response.raise_for_status()
                with opener(destination) as sink:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        sink.write(chunk)
                        written += len(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Download of {request.url} failed after {written} bytes: {e!r}")
            return Failure(TransferError(destination, e))
        except Exception as e:
            # Raised while opening or writing the sink, e.g. OSError or a closed-file ValueError
            logger.error(f"Writing {destination} failed after {written} bytes: {e!r}")
            return Failure(TransferError(destination, e))

        logger.info(f"Downloaded {written} bytes to {destination}.")
        return Success(destination)
