"""
Web monitor: live feed of detected tags over Flask + Flask-SocketIO
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Optional

from flask import Flask, jsonify
from flask_socketio import SocketIO, emit

from .config import get_config
from .exceptions import BusPermissionError, CommunicationError, Pn532Error
from .nfc_tag import TagReport
from .poller import PollerState, TagPoller
from .tag_source import TagSource, create_tag_source

# Load configuration
config = get_config()

app = Flask(__name__)
app.config.from_object(config)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')

logger = logging.getLogger(__name__)


class ReaderBusyError(Pn532Error):
    """Raised when starting a reader that is already polling"""
    pass


class ReaderService:
    """Owns the poller running behind the web monitor and its recent tags"""

    def __init__(self, config, source_factory: Callable[..., TagSource] = create_tag_source):
        self.config = config
        self.source_factory = source_factory
        self.poller: Optional[TagPoller] = None
        self.worker = None
        self.detected_tags = deque(maxlen=config.MAX_TAGS_DISPLAY)
        self.total_reports = 0
        self.last_error: Optional[str] = None
        self._lock = threading.Lock()
        self._start_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self.poller is not None and self.poller.state is PollerState.POLLING

    def status(self) -> dict:
        poller = self.poller
        return {
            'running': self.is_running,
            'state': poller.state.value if poller else None,
            'device': poller.source.device_name if poller else None,
            'firmware': str(poller.firmware_version) if poller and poller.firmware_version else None,
            'total_reports': self.total_reports,
            'last_error': self.last_error,
        }

    def tags(self) -> list:
        with self._lock:
            return list(self.detected_tags)

    def _on_report(self, report: TagReport) -> None:
        tag_data = report.to_dict()
        tag_data['timestamp'] = time.strftime("%H:%M:%S", time.localtime(report.received_at))
        with self._lock:
            self.detected_tags.append(tag_data)
            self.total_reports += 1
        socketio.emit('tag_detected', tag_data)

    def start(self):
        """Run the handshake synchronously, then poll in a background task"""
        # Held through the handshake so a second start cannot open the bus twice
        if not self._start_lock.acquire(blocking=False):
            raise ReaderBusyError("Reader is starting")
        try:
            if self.is_running:
                raise ReaderBusyError("Reader is already polling")

            self.last_error = None
            try:
                poller = TagPoller.from_config(self.source_factory(self.config), self.config)
                poller.add_listener(self._on_report)
                self.poller = poller
                version = poller.start()
            except Exception as e:
                self.last_error = str(e)
                raise

            self.worker = socketio.start_background_task(self._poll, poller)
        finally:
            self._start_lock.release()

        socketio.emit('reader_status', self.status())
        return version

    def _poll(self, poller: TagPoller) -> None:
        try:
            poller.poll()
        except Exception as e:
            logger.exception(f"❌ Polling stopped: {e}")
            self.last_error = str(e)
        socketio.emit('reader_status', self.status())

    def stop(self, timeout: float = 2.0) -> None:
        if self.poller is not None:
            self.poller.stop()
        if self.worker is not None:
            self.worker.join(timeout)
            self.worker = None


service = ReaderService(config)


@app.route('/')
def index():
    return jsonify({'success': True, 'data': service.status()})


@app.route('/api/status', methods=['GET'])
def api_status():
    return jsonify({'success': True, 'data': service.status()})


@app.route('/api/start', methods=['POST'])
def api_start():
    try:
        version = service.start()
    except ReaderBusyError as e:
        return jsonify({'success': False, 'error': str(e)}), 409
    except BusPermissionError as e:
        return jsonify({
            'success': False,
            'error': f"{e}. Run with sudo or add the user to the 'spi' and 'gpio' groups."
        }), 403
    except CommunicationError as e:
        return jsonify({'success': False, 'error': str(e)}), 503
    except Exception as e:
        logger.error(f"Start reader error: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

    return jsonify({'success': True, 'message': 'Polling started', 'firmware': str(version)})


@app.route('/api/stop', methods=['POST'])
def api_stop():
    service.stop()
    return jsonify({'success': True, 'message': 'Polling stopped', 'data': service.status()})


@app.route('/api/get_tags', methods=['GET'])
def api_get_tags():
    return jsonify({
        'success': True,
        'data': service.tags(),
        'stats': {'total_reports': service.total_reports}
    })


@socketio.on('connect')
def handle_connect():
    logger.info("🔌 WebSocket client connected")
    emit('reader_status', service.status())


@socketio.on('disconnect')
def handle_disconnect(reason=None):
    logger.info("🔌 WebSocket client disconnected")
