import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from ..constants import DEFAULT_CONCURRENCY
from ..exceptions import AuthorizationError, AuthorizationExpiredError
from ..models.api import UploadPart
from ..models.upload import UploadSession
from . import PartAuthorizer, log
from .part_uploader import PartUploader
from .planner import PartTask

ProgressCallback = Callable[[float], None]
PartReader = Callable[[PartTask], bytes]


class _RunState:
    """Shared state of one orchestrator run. Every field is guarded by ``lock``."""

    def __init__(self, num_parts: int):
        self.lock = threading.Lock()
        self.cancelled = threading.Event()
        self.cursor = 0
        self.completed = 0
        self.error: BaseException | None = None
        self.results: list[UploadPart | None] = [None] * num_parts


class UploadOrchestrator:
    """
    Uploads the parts of one session with a fixed pool of workers.

    Each worker claims the next unclaimed part, authorizes it, uploads it and records the
    result, until all parts are claimed or another worker failed. A failure stops further
    claims; transfers already in flight finish on their own. Nothing is finalized here.
    """

    __log = log.getChild("UploadOrchestrator")

    def __init__(
        self,
        authorizer: PartAuthorizer,
        uploader: PartUploader,
        concurrency: int = DEFAULT_CONCURRENCY,
    ):
        if concurrency < 1:
            raise ValueError(f"Concurrency must be at least 1, got {concurrency}")
        self._authorizer = authorizer
        self._uploader = uploader
        self._concurrency = concurrency

    def _authorize(self, session: UploadSession, part_number: int) -> str:
        try:
            url = self._authorizer.authorize(session, part_number)
        except AuthorizationError:
            raise
        except Exception as e:
            raise AuthorizationError(f"Could not authorize part {part_number}: {e}") from e
        if not url:
            raise AuthorizationError(f"Empty upload URL for part {part_number}")
        return url

    def _upload(self, session: UploadSession, task: PartTask, read_part: PartReader) -> UploadPart:
        data = read_part(task)
        url = self._authorize(session, task.part_number)
        try:
            etag = self._uploader.upload_part(url, data, part_number=task.part_number)
        except AuthorizationExpiredError:
            # one fresh URL per part; a second rejection is final
            self.__log.warning(f"URL for part {task.part_number} was rejected, requesting a new one")
            url = self._authorize(session, task.part_number)
            etag = self._uploader.upload_part(url, data, part_number=task.part_number)
        return UploadPart(part_number=task.part_number, etag=etag)

    @staticmethod
    def _claim(state: _RunState, tasks: Sequence[PartTask]) -> PartTask | None:
        with state.lock:
            if state.cancelled.is_set() or state.cursor >= len(tasks):
                return None
            task = tasks[state.cursor]
            state.cursor += 1
            return task

    def _worker(
        self,
        state: _RunState,
        session: UploadSession,
        tasks: Sequence[PartTask],
        read_part: PartReader,
        on_progress: ProgressCallback | None,
    ):
        while (task := self._claim(state, tasks)) is not None:
            try:
                result = self._upload(session, task, read_part)
                with state.lock:
                    state.results[task.part_number - 1] = result
                    state.completed += 1
                    if on_progress is not None:
                        on_progress(state.completed / len(tasks))
            except Exception as e:
                with state.lock:
                    if state.error is None:
                        self.__log.error(f"Part {task.part_number} failed, cancelling remaining parts: {e}")
                        state.error = e
                    state.cancelled.set()
                return

    def run(
        self,
        session: UploadSession,
        part_tasks: Sequence[PartTask],
        read_part: PartReader,
        on_progress: ProgressCallback | None = None,
    ) -> list[UploadPart]:
        """
        Upload all parts of a session.

        :param session: The session the parts belong to.
        :param part_tasks: Planned parts, numbered ``1..N``.
        :param read_part: Returns the bytes of a part. Called from worker threads.
        :param on_progress: Receives the completed fraction after every finished part.
        :return: One result per part, ascending by part number.
        :raises Exception: the first error of any worker, after all workers stopped.
        """
        if not part_tasks:
            raise ValueError("No parts to upload")
        numbers = sorted(task.part_number for task in part_tasks)
        if numbers != list(range(1, len(part_tasks) + 1)):
            raise ValueError("Part numbers must be unique and contiguous from 1")

        state = _RunState(len(part_tasks))
        num_workers = min(self._concurrency, len(part_tasks))
        self.__log.info(
            f"Uploading {len(part_tasks)} part(s) of {session.key} with {num_workers} worker(s) "
            f"(UploadId: {session.upload_id})"
        )

        with ThreadPoolExecutor(max_workers=num_workers, thread_name_prefix="hookdrop-part") as executor:
            futures = [
                executor.submit(self._worker, state, session, part_tasks, read_part, on_progress)
                for _ in range(num_workers)
            ]
            for future in as_completed(futures):
                future.result()

        if state.error is not None:
            raise state.error

        results = [result for result in state.results if result is not None]
        if len(results) != len(part_tasks):
            raise RuntimeError(f"Expected {len(part_tasks)} part results, got {len(results)}")
        return sorted(results, key=lambda part: part.part_number)
