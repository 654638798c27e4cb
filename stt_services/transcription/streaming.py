"""
Audio stream helpers for streaming transcription
"""

from typing import AsyncIterable, AsyncIterator, Union


class ReplayableAudioStream:
    """
    Async byte stream that every iteration reads from the start

    Pieces pulled from the source are kept, so a provider that gives up
    before producing any text does not leave the next one with a drained
    stream. Iterations are meant to run one after another, not concurrently.
    """

    def __init__(self, source: Union[AsyncIterable[bytes], bytes, bytearray]):
        if isinstance(source, (bytes, bytearray)):
            self._buffer: list[bytes] = [bytes(source)]
            self._source = None
            self._exhausted = True
        else:
            self._buffer = []
            self._source = source.__aiter__()
            self._exhausted = False

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._replay()

    async def _replay(self) -> AsyncIterator[bytes]:
        index = 0
        while True:
            if index < len(self._buffer):
                yield self._buffer[index]
                index += 1
                continue

            if self._exhausted:
                return

            try:
                piece = await self._source.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                return

            self._buffer.append(piece)

    async def drain(self) -> int:
        """Pull the rest of the source into the buffer and return its total size"""
        async for _ in self._replay():
            pass
        return self.buffered_bytes

    @property
    def buffered_bytes(self) -> int:
        return sum(len(piece) for piece in self._buffer)
