from __future__ import annotations
"""
Embedded HTTP remote control.

Serves a small command/status protocol so a phone browser on the same network
can drive the presentation:

    GET /                                           control page (HTML)
    GET /next /prev /play /stop /zoomin /zoomout    run command, return status
    GET /scroll?dy=<int>                            scroll, return status
    GET /status                                     return status

Commands go to an injected `CommandHandler`; the service never touches the
presentation itself. Requests are handled on worker threads, separate from the
accept loop, so a slow command cannot hold up `stop()`.
"""

import logging
import os
import socket
import threading

from flask import Flask, Response, abort, jsonify, request
from werkzeug.serving import BaseWSGIServer, make_server

from . import config
from .exceptions.present_errors import ListenerBindError
from .slides import PresentationStatus

logger = logging.getLogger(__name__)

# Route name -> CommandHandler method for the argument-less commands.
CONTROL_COMMANDS = {
    'next': 'next',
    'prev': 'prev',
    'play': 'play',
    'stop': 'stop',
    'zoomin': 'zoom_in',
    'zoomout': 'zoom_out',
}

CONTROL_PAGE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1, maximum-scale=1, user-scalable=no">
  <title>Present Remote</title>
  <style>
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body {
      background: #111;
      color: #fff;
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
      min-height: 100vh;
      display: flex;
      flex-direction: column;
      align-items: center;
      justify-content: center;
      padding: 20px;
    }
    h1 { font-size: 1.4em; margin-bottom: 8px; }
    #slide-info { font-size: 1.1em; color: #aaa; margin-bottom: 20px; min-height: 1.4em; }
    #slide-info span { color: #0af; font-weight: bold; }
    .grid {
      display: grid;
      grid-template-columns: 1fr 1fr;
      gap: 12px;
      width: 100%;
      max-width: 360px;
    }
    button {
      background: #2a2a2a;
      color: #fff;
      border: 1px solid #444;
      border-radius: 14px;
      padding: 22px 12px;
      font-size: 1.1em;
      cursor: pointer;
      touch-action: manipulation;
      -webkit-tap-highlight-color: transparent;
    }
    button:active { background: #444; }
    button.wide { grid-column: span 2; }
    button.play { background: #0a5; border-color: #0c6; }
    button.stop { background: #733; border-color: #944; }
    #status-bar { margin-top: 20px; font-size: 0.8em; color: #555; }
    #status-bar.connected { color: #0a5; }
    #status-bar.error { color: #c44; }
  </style>
</head>
<body>
  <h1>Present Remote</h1>
  <div id="slide-info">Connecting...</div>
  <div class="grid">
    <button onclick="cmd('prev')">Prev</button>
    <button onclick="cmd('next')">Next</button>
    <button class="wide play" onclick="cmd('play')">Play Fullscreen</button>
    <button class="wide stop" onclick="cmd('stop')">Stop</button>
    <button onclick="cmd('zoomin')">Zoom In</button>
    <button onclick="cmd('zoomout')">Zoom Out</button>
    <button onclick="cmd('scroll?dy=-200')">Scroll Up</button>
    <button onclick="cmd('scroll?dy=200')">Scroll Down</button>
  </div>
  <div id="status-bar">Connecting...</div>
  <script>
    function cmd(action) {
      fetch('/' + action).then(r => r.json()).then(updateUI).catch(setError);
    }
    function updateUI(s) {
      if (!s) return;
      const total = s.slideCount || 0;
      const idx = (s.currentIndex || 0) + 1;
      document.getElementById('slide-info').innerHTML = total > 0
        ? 'Slide <span>' + idx + '</span> of <span>' + total + '</span>'
          + (s.isPlaying ? ' <span style="color:#0a5">Playing</span>' : '')
        : 'No slides loaded';
      const bar = document.getElementById('status-bar');
      bar.textContent = 'Connected';
      bar.className = 'connected';
    }
    function setError(e) {
      const bar = document.getElementById('status-bar');
      bar.textContent = 'Error: ' + e;
      bar.className = 'error';
    }
    function poll() {
      fetch('/status').then(r => r.json()).then(updateUI).catch(() => {
        const bar = document.getElementById('status-bar');
        bar.textContent = 'Disconnected';
        bar.className = 'error';
      });
    }
    setInterval(poll, 2000);
    poll();
  </script>
</body>
</html>
"""


class CommandHandler:
    """
    Receiver of remote control commands.

    Every method is a no-op by default, so a host only overrides what it
    supports. Methods are called on HTTP worker threads; implementations must
    marshal onto their own thread before touching presentation state.
    """

    def next(self) -> None:
        pass

    def prev(self) -> None:
        pass

    def play(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def zoom_in(self) -> None:
        pass

    def zoom_out(self) -> None:
        pass

    def scroll(self, dy: int) -> None:
        pass

    def status(self) -> PresentationStatus:
        return PresentationStatus()


def create_app(handler: CommandHandler) -> Flask:
    """Build the Flask application that maps routes onto `handler`."""
    app = Flask(__name__)

    @app.after_request
    def allow_any_origin(response: Response) -> Response:
        if response.mimetype == 'application/json':
            response.headers['Access-Control-Allow-Origin'] = '*'
        return response

    @app.get('/')
    def control_page() -> Response:
        return Response(CONTROL_PAGE_HTML, mimetype='text/html')

    @app.get('/status')
    def status() -> Response:
        return jsonify(handler.status().to_dict())

    @app.get('/scroll')
    def scroll() -> Response:
        dy = request.args.get('dy', type=int)
        if dy is not None:
            handler.scroll(dy)
        return status()

    @app.get('/<command>')
    def command(command: str) -> Response:
        method = CONTROL_COMMANDS.get(command)
        if method is None:
            abort(404)
        logger.debug(f"Remote command: {command}")
        getattr(handler, method)()
        return status()

    return app


class RemoteControlService:
    """
    Runs the control application on a background werkzeug server.

    `start` and `stop` are idempotent. `stop` returns immediately; the server
    winds down on a helper thread, and a following `start` waits for it.

    Args:
        handler: Receives the commands.
        host: Address to bind.
        port: TCP port to bind; 0 picks a free port (see `bound_port`).
    """

    def __init__(self, handler: CommandHandler, host: str = config.DEFAULT_HOST,
                 port: int = config.DEFAULT_PORT):
        self.handler = handler
        self.host = host
        self.port = port
        self.app = create_app(handler)
        self._server: BaseWSGIServer | None = None
        self._serve_thread: threading.Thread | None = None
        self._shutdown_thread: threading.Thread | None = None
        self._lifecycle_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def bound_port(self) -> int | None:
        server = self._server
        return server.port if server is not None else None

    def start(self) -> None:
        """
        Bind the port and start serving.

        Raises:
            ListenerBindError: The port could not be bound.
        """
        self.join()
        with self._lifecycle_lock:
            if self._server is not None:
                return
            sock = self._bind()
            try:
                server = make_server(self.host, self.port, self.app, threaded=True, fd=sock.fileno())
            finally:
                sock.close()
            # Handler threads are daemons and are not joined on close.
            server.block_on_close = False
            self._server = server
            self._serve_thread = threading.Thread(
                target=server.serve_forever, name='present-remote', daemon=True)
            self._serve_thread.start()
        logger.info(f"Remote control listening on {self.host}:{server.port}")

    def stop(self) -> None:
        """Stop serving. Does not wait for in-flight command handlers."""
        with self._lifecycle_lock:
            server, serve_thread = self._server, self._serve_thread
            if server is None:
                return
            self._server = None
            self._serve_thread = None
            self._shutdown_thread = threading.Thread(
                target=self._shutdown, args=(server, serve_thread),
                name='present-remote-shutdown', daemon=True)
            self._shutdown_thread.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for a previous `stop` to finish releasing the port."""
        shutdown_thread = self._shutdown_thread
        if shutdown_thread is not None:
            shutdown_thread.join(timeout)

    def __enter__(self) -> 'RemoteControlService':
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
        self.join()

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ':' in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            if os.name != 'nt':
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(socket.SOMAXCONN)
        except OSError as e:
            sock.close()
            raise ListenerBindError(self.host, self.port, e.strerror or str(e)) from e
        return sock

    @staticmethod
    def _shutdown(server: BaseWSGIServer, serve_thread: threading.Thread | None) -> None:
        server.shutdown()
        server.server_close()
        if serve_thread is not None:
            serve_thread.join()
        logger.info("Remote control stopped.")


def local_ip_address() -> str:
    """Best-effort LAN address of this machine, for showing the remote URL."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as udp:
        try:
            udp.connect(('10.255.255.255', 1))
            return udp.getsockname()[0]
        except OSError:
            return '127.0.0.1'
