"""
Comparison orchestrator: loads the two images, hands them to a background
compare worker and publishes the latest result.

Every change of input starts a new generation. Results are tagged with the
generation that requested them and anything older than the current one is
dropped on arrival.
"""

import logging
from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, QThread, Signal, QCoreApplication, QDeadlineTimer

from .compare_engine import CompareRequest, CompareWorker, ComparisonResult, DisplayOptions
from .constants import WORKER_STOP_TIMEOUT_MS
from .errors import ComparisonError
from .pixel_buffer import DecodedImage
from .raster import load_image_file, rasterize_pair

logger = logging.getLogger(__name__)

FIRST = 0
SECOND = 1


class ComparisonState(Enum):
    """Lifecycle of the current comparison generation"""
    IDLE = "Idle"
    LOADING = "Loading"
    COMPARING = "Comparing"
    READY = "Ready"
    FAILED = "Failed"


class ImageLoadWorker(QThread):
    """Background thread that reads and decodes one image file.

    Results carry only the load token; the orchestrator maps it back to
    whichever slot currently owns it, so a swap mid-load still routes the
    image correctly.
    """
    image_loaded = Signal(int, object)  # (token, DecodedImage)
    load_failed = Signal(int, str)      # (token, message)

    def __init__(self, token, file_path, parent=None):
        super().__init__(parent)
        self.token = token
        self.file_path = file_path

    def run(self):
        try:
            image = load_image_file(self.file_path)
        except ComparisonError as e:
            self.load_failed.emit(self.token, str(e))
        except Exception as e:
            logger.error("Unexpected error loading %s", self.file_path, exc_info=True)
            self.load_failed.emit(self.token, f"{self.file_path}: {e}")
        else:
            self.image_loaded.emit(self.token, image)


class ComparisonOrchestrator(QObject):
    """Sequences load -> rasterize -> compare and keeps the latest result."""
    state_changed = Signal(object)         # ComparisonState
    result_changed = Signal(object)        # ComparisonResult or None
    images_changed = Signal(object, object)  # (first, second) DecodedImage or None
    loading_changed = Signal(int, bool)    # (slot, is_loading)
    error_occurred = Signal(str)

    def __init__(self, options: Optional[DisplayOptions] = None, parent=None):
        super().__init__(parent)
        self._images = [None, None]
        self._options = options if options is not None else DisplayOptions()
        self._state = ComparisonState.IDLE
        self._result: Optional[ComparisonResult] = None
        self._last_error: Optional[str] = None

        self._generation = 0
        self._comparing = False
        self._failed = False  # current generation errored
        self._last_token = 0
        self._load_tokens = [None, None]  # pending load token per slot
        self._compare_workers = {}  # generation -> CompareWorker
        self._load_workers = {}     # token -> ImageLoadWorker

    # Read-only views

    @property
    def state(self) -> ComparisonState:
        return self._state

    @property
    def result(self) -> Optional[ComparisonResult]:
        return self._result

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def options(self) -> DisplayOptions:
        return self._options

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def images(self):
        return tuple(self._images)

    def image(self, slot) -> Optional[DecodedImage]:
        return self._images[slot]

    def is_loading(self, slot) -> bool:
        return self._load_tokens[slot] is not None

    # Inputs

    def load_file(self, slot, file_path):
        """Decode an image file in the background and place it in ``slot``."""
        self._last_token += 1
        token = self._last_token
        logger.debug("Loading %s into slot %d (token %d)", file_path, slot, token)

        worker = ImageLoadWorker(token, file_path, self)
        worker.image_loaded.connect(self._on_image_loaded)
        worker.load_failed.connect(self._on_load_failed)
        self._load_workers[token] = worker
        self._start_worker(worker)

        self._set_pending(slot, token)
        other = self._images[1 - slot]
        if other is not None or self.is_loading(1 - slot):
            self._set_state(ComparisonState.LOADING)

    def set_image(self, slot, image: Optional[DecodedImage]):
        """Place an already decoded image (or None) in ``slot``."""
        # Supersedes any load still running for this slot
        self._set_pending(slot, None)
        self._images[slot] = image
        self.images_changed.emit(self._images[FIRST], self._images[SECOND])
        self._start_generation()

    def clear_image(self, slot):
        self.set_image(slot, None)

    def swap_images(self):
        # Pending loads travel with their slot
        first_token, second_token = self._load_tokens
        self._set_pending(FIRST, second_token)
        self._set_pending(SECOND, first_token)
        self._images.reverse()
        self.images_changed.emit(self._images[FIRST], self._images[SECOND])
        self._start_generation()

    def reset_images(self):
        for slot in (FIRST, SECOND):
            self._set_pending(slot, None)
        self._images = [None, None]
        self.images_changed.emit(None, None)
        self._start_generation()

    def set_options(self, options: DisplayOptions):
        """Change overlay options; recompares without reloading pixels."""
        if options == self._options:
            return
        self._options = options
        logger.debug("Display options changed: %s", options)
        self._start_generation()

    # Generation handling

    def _start_generation(self):
        self._generation += 1
        generation = self._generation
        self._comparing = False
        self._failed = False
        first, second = self._images

        if first is None or second is None:
            self._result = None
            self._last_error = None
            self.result_changed.emit(None)
            self._set_state(ComparisonState.IDLE)
            return

        self._set_state(ComparisonState.LOADING)
        try:
            first_buf, second_buf = rasterize_pair(first.pixels, second.pixels)
        except (MemoryError, ValueError) as e:
            self._fail(f"Cannot prepare {first.info.name} and {second.info.name}: {e}")
            return
        logger.debug("Generation %d: comparing %s and %s on %dx%d canvas",
                     generation, first, second, first_buf.width, first_buf.height)

        request = CompareRequest(generation, first_buf, second_buf, self._options)
        del first_buf, second_buf

        worker = CompareWorker(request, self)
        worker.result_ready.connect(self._on_compare_result)
        worker.compare_failed.connect(self._on_compare_failed)
        self._comparing = True
        self._compare_workers[generation] = worker
        self._start_worker(worker)
        self._set_state(ComparisonState.COMPARING)

    def _on_compare_result(self, generation, result):
        self._compare_workers.pop(generation, None)
        if generation != self._generation:
            logger.debug("Discarding stale result of generation %d (current %d)",
                         generation, self._generation)
            return
        self._comparing = False
        self._result = result
        self._last_error = None
        self.result_changed.emit(result)
        self._settle_state()

    def _on_compare_failed(self, generation, message):
        self._compare_workers.pop(generation, None)
        if generation != self._generation:
            logger.debug("Discarding stale failure of generation %d", generation)
            return
        self._comparing = False
        self._fail(message)

    def _slot_for_token(self, token):
        for slot in (FIRST, SECOND):
            if self._load_tokens[slot] == token:
                return slot
        return None

    def _on_image_loaded(self, token, image):
        self._load_workers.pop(token, None)
        slot = self._slot_for_token(token)
        if slot is None:
            logger.debug("Discarding stale load (token %d)", token)
            return
        logger.debug("Slot %d loaded: %s", slot, image)
        self.set_image(slot, image)

    def _on_load_failed(self, token, message):
        self._load_workers.pop(token, None)
        slot = self._slot_for_token(token)
        if slot is None:
            return
        self._set_pending(slot, None)
        logger.error("Failed to load image for slot %d: %s", slot, message)
        # The slot keeps its previous image; the last good result stays on screen
        self._last_error = message
        self.error_occurred.emit(message)
        self._settle_state()

    def _fail(self, message):
        logger.error("Comparison failed: %s", message)
        self._failed = True
        self._last_error = message
        self._set_state(ComparisonState.FAILED)
        self.error_occurred.emit(message)

    def _settle_state(self):
        if self._images[FIRST] is None or self._images[SECOND] is None:
            state = ComparisonState.IDLE
        elif self.is_loading(FIRST) or self.is_loading(SECOND):
            state = ComparisonState.LOADING
        elif self._comparing:
            state = ComparisonState.COMPARING
        elif self._failed or self._result is None:
            state = ComparisonState.FAILED
        else:
            state = ComparisonState.READY
        self._set_state(state)

    def _set_state(self, state):
        if state == self._state:
            return
        logger.debug("State %s -> %s (generation %d)",
                     self._state.value, state.value, self._generation)
        self._state = state
        self.state_changed.emit(state)

    def _set_pending(self, slot, token):
        was_loading = self.is_loading(slot)
        self._load_tokens[slot] = token
        if self.is_loading(slot) != was_loading:
            self.loading_changed.emit(slot, not was_loading)

    # Worker bookkeeping

    def _start_worker(self, worker):
        # Parented to the orchestrator; Qt frees the thread object once it has finished
        worker.finished.connect(worker.deleteLater)
        worker.start()

    def _running_workers(self):
        return list(self._compare_workers.values()) + list(self._load_workers.values())

    def wait_for_workers(self, timeout_ms=WORKER_STOP_TIMEOUT_MS):
        """Block until background work settles, then deliver its signals.

        A finished load starts a comparison, so this keeps going until no
        worker is outstanding. Returns False if the timeout expired first.
        """
        deadline = QDeadlineTimer(timeout_ms)
        while True:
            workers = self._running_workers()
            if not workers:
                return True
            for worker in workers:
                if not worker.wait(deadline):
                    return False
            QCoreApplication.processEvents()
            if deadline.hasExpired():
                return not self._running_workers()

    def shutdown(self):
        """Stop accepting results and wait for running workers."""
        self._generation += 1
        self._load_tokens = [None, None]
        for worker in self._running_workers():
            worker.wait(WORKER_STOP_TIMEOUT_MS)
        self._compare_workers.clear()
        self._load_workers.clear()
