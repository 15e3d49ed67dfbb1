"""
ui.py
------
Flask-based single-page UI for offset correction.
"""
import os
import tempfile
import threading
import webbrowser
import logging
from flask import Flask, request, jsonify, send_file, render_template_string
from werkzeug.utils import secure_filename

from . import config
from .engine import get_engine
from .errors import ValidationError
from .media import validate_file
from .relay import relay
from .session import SyncSession
from .utils import file_extension

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES + 1024 * 1024
app.register_blueprint(relay)
logger = logging.getLogger(__name__)

# Global state
app_state = {
    "session": None,
}


def get_session() -> SyncSession:
    if app_state["session"] is None:
        app_state["session"] = SyncSession()
    return app_state["session"]


def run_in_background(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


# --- HTML Template ---

BASE_CSS = """
* { box-sizing: border-box; margin: 0; padding: 0; }
body { font-family: 'Segoe UI', Arial, sans-serif; background: #f4f6fb; min-height: 100vh; color: #1f2937; }
.card { max-width: 1000px; margin: 40px auto; background: white; border-radius: 16px; padding: 30px; display: grid; grid-template-columns: 1fr 1fr; gap: 30px; box-shadow: 0 10px 30px rgba(0,0,0,0.08); }
.heading { font-size: 24px; margin-bottom: 8px; }
.subtext { color: #6b7280; font-size: 14px; margin: 6px 0; }
.upload-box { display: block; border: 2px dashed #93c5fd; border-radius: 12px; padding: 30px; text-align: center; cursor: pointer; margin: 20px 0; }
.upload-box.drag { background: #eff6ff; }
.upload-box input { display: none; }
.error-msg { color: #dc2626; margin: 10px 0; font-size: 14px; }
.ok-msg { color: #16a34a; }
.btn-row { display: flex; gap: 8px; margin-top: 10px; }
.btn { padding: 10px 20px; border: none; border-radius: 8px; cursor: pointer; font-weight: 600; color: white; }
.btn:disabled { background: #9ca3af; cursor: not-allowed; }
.btn-green { background: #16a34a; }
.btn-blue { background: #2563eb; }
.hidden { display: none; }
video { width: 100%; border-radius: 10px; background: #000; }
input[type="range"] { width: 100%; }
.engine-log { font-family: monospace; font-size: 11px; color: #9ca3af; margin-top: 10px; }
"""

INDEX_HTML = """
<!DOCTYPE html>
<html>
<head>
    <title>StreamSync</title>
    <style>""" + BASE_CSS + """</style>
</head>
<body>
<div class="card">
    <div>
        <h1 class="heading">StreamSync — Upload your out-of-sync video</h1>
        <p class="subtext">Upload a video and get automatic AV offset detection.</p>

        <label class="upload-box" id="dropBox">
            <input type="file" id="fileInput" accept="video/*">
            <p>Drag &amp; drop or click to select</p>
            <p class="subtext">Supported: MP4, WebM, MOV, MKV, AVI</p>
        </label>

        <div class="error-msg hidden" id="errorMsg"></div>

        <div class="btn-row">
            <button class="btn btn-green" id="analyzeBtn" disabled onclick="post('/api/analyze')">Upload &amp; Analyze</button>
            <button class="btn btn-blue hidden" id="saveBtn" onclick="post('/api/export')">Save</button>
            <a class="btn btn-blue hidden" id="downloadBtn" href="/media/output">Download</a>
        </div>

        <p class="subtext ok-msg" id="message"></p>
        <p class="engine-log" id="engineLog"></p>
    </div>

    <div>
        <video id="player" controls></video>
        <p class="subtext">File: <strong id="fileLabel">No file selected</strong></p>

        <label class="subtext" style="font-weight: 600;">Adjust audio offset (ms)</label>
        <div style="display: flex; gap: 8px; align-items: center;">
            <input type="range" id="offset" min="{{ offset_min }}" max="{{ offset_max }}" step="{{ offset_step }}" value="0">
            <span id="offsetLabel">0 ms</span>
        </div>
        <p class="subtext">Positive = audio delayed. Negative = audio ahead.</p>

        <div class="btn-row">
            <button class="btn btn-blue" onclick="post('/api/preview')">Preview</button>
            <button class="btn btn-green" onclick="post('/api/stop')">Stop</button>
        </div>
    </div>
</div>

<script>
    const fileInput = document.getElementById('fileInput');
    const dropBox = document.getElementById('dropBox');
    const slider = document.getElementById('offset');
    let dragging = false;
    let assetName = null;

    function upload(file) {
        const formData = new FormData();
        formData.append('video', file);
        fetch('/api/select', { method: 'POST', body: formData })
            .then(r => r.json()).then(render)
            .catch(err => showError('Upload failed.'));
    }

    fileInput.addEventListener('change', (e) => { if (e.target.files[0]) upload(e.target.files[0]); });
    dropBox.addEventListener('dragover', (e) => { e.preventDefault(); dropBox.classList.add('drag'); });
    dropBox.addEventListener('dragleave', () => dropBox.classList.remove('drag'));
    dropBox.addEventListener('drop', (e) => {
        e.preventDefault();
        dropBox.classList.remove('drag');
        if (e.dataTransfer.files[0]) upload(e.dataTransfer.files[0]);
    });

    slider.addEventListener('input', () => {
        dragging = true;
        document.getElementById('offsetLabel').innerText = slider.value + ' ms';
    });
    slider.addEventListener('change', () => {
        fetch('/api/offset', {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify({ offset_ms: Number(slider.value) })
        }).then(r => r.json()).then(data => { dragging = false; render(data); });
    });

    function post(url) {
        fetch(url, { method: 'POST' }).then(r => r.json()).then(render);
    }

    function showError(text) {
        const el = document.getElementById('errorMsg');
        el.innerText = text;
        el.classList.toggle('hidden', !text);
    }

    function render(state) {
        showError(state.error);
        document.getElementById('message').innerText = state.message || '';
        document.getElementById('engineLog').innerText = state.engine_log || '';
        const busy = state.busy || [];
        const analyzeBtn = document.getElementById('analyzeBtn');
        analyzeBtn.disabled = !state.asset || busy.includes('analyze');
        analyzeBtn.innerText = busy.includes('analyze') ? 'Uploading…' : 'Upload & Analyze';
        const saveBtn = document.getElementById('saveBtn');
        saveBtn.classList.toggle('hidden', !state.offset_received);
        saveBtn.disabled = busy.includes('export');
        document.getElementById('downloadBtn').classList.toggle('hidden', !state.output_ready);
        if (!dragging) {
            slider.value = state.control_value;
            document.getElementById('offsetLabel').innerText = state.offset_ms + ' ms';
        }
        const name = state.asset ? state.asset.name : null;
        document.getElementById('fileLabel').innerText = name || 'No file selected';
        if (name !== assetName) {
            assetName = name;
            document.getElementById('player').src = name ? '/media/preview?v=' + Date.now() : '';
        }
    }

    setInterval(() => fetch('/api/status').then(r => r.json()).then(render), 1000);
</script>
</body>
</html>
"""

# --- Routes ---

@app.route('/')
def index():
    return render_template_string(INDEX_HTML, offset_min=config.OFFSET_MIN_MS,
                                  offset_max=config.OFFSET_MAX_MS, offset_step=config.OFFSET_STEP_MS)


@app.route('/api/status')
def api_status():
    return jsonify(get_session().snapshot())


@app.route('/api/select', methods=['POST'])
def api_select():
    session = get_session()
    upload = request.files.get('video')
    if upload is None or upload.filename == '':
        return jsonify({**session.snapshot(), "error": "No file part in the request"}), 400

    try:
        validate_file(upload.filename, request.content_length or 0)
    except ValidationError as e:
        logger.warning("Upload rejected: %s (%s)", upload.filename, e)
        session.error = str(e)
        return jsonify(session.snapshot()), 400

    filename = secure_filename(upload.filename) or "upload." + file_extension(upload.filename)
    try:
        # One directory per upload; same-named files never collide.
        save_path = os.path.join(tempfile.mkdtemp(dir=config.UPLOAD_DIR), filename)
        upload.save(save_path)
    except OSError as e:
        logger.error("Failed to save %s: %s", filename, e, exc_info=True)
        session.error = f"Failed to save {filename}"
        return jsonify(session.snapshot()), 500
    logger.info("File uploaded: %s", filename)

    # Selecting a clip starts the analysis straight away.
    name = upload.filename
    run_in_background(lambda: session.select(save_path, name=name, analyze=True))
    return jsonify(session.snapshot())


@app.route('/api/analyze', methods=['POST'])
def api_analyze():
    session = get_session()
    if session.asset is None:
        session.error = "Select a file first"
        return jsonify(session.snapshot()), 400
    if not session.busy("analyze"):
        run_in_background(session.analyze)
    return jsonify(session.snapshot())


@app.route('/api/offset', methods=['GET', 'POST'])
def api_offset():
    session = get_session()
    if request.method == 'POST':
        data = request.get_json(silent=True) or {}
        try:
            session.set_offset(float(data["offset_ms"]))
        except (KeyError, TypeError, ValueError):
            return jsonify({**session.snapshot(), "error": "offset_ms must be a number"}), 400
    return jsonify(session.snapshot())


@app.route('/api/preview', methods=['POST'])
def api_preview():
    session = get_session()
    session.preview()
    return jsonify(session.snapshot())


@app.route('/api/stop', methods=['POST'])
def api_stop():
    session = get_session()
    session.stop()
    return jsonify(session.snapshot())


@app.route('/api/export', methods=['POST'])
def api_export():
    session = get_session()
    if session.asset is None:
        session.error = "Select a file first"
        return jsonify(session.snapshot()), 400
    if not session.offsets.detection_received:
        session.error = "Analyze the clip first"
        return jsonify(session.snapshot()), 400
    if not session.busy("export"):
        run_in_background(session.export)
    return jsonify(session.snapshot())


@app.route('/media/preview')
def media_preview():
    session = get_session()
    if session.asset is None:
        return jsonify({"error": "No file selected"}), 404
    return send_file(os.path.abspath(session.asset.preview_path))


@app.route('/media/output')
def media_output():
    session = get_session()
    if session.output_path is None or not os.path.exists(session.output_path):
        return jsonify({"error": "No corrected version yet"}), 404
    return send_file(os.path.abspath(session.output_path), as_attachment=True,
                     download_name=os.path.basename(session.output_path))


def run_app(host: str = config.HOST, port: int = config.PORT, open_browser: bool = True):
    """Launch the web UI."""
    get_engine().load_in_background()
    url = f"http://{host}:{port}"
    print(f"\n{'='*50}")
    print(f"  StreamSync")
    print(f"  Open in browser: {url}")
    print(f"{'='*50}\n")

    if open_browser:
        threading.Timer(1.0, lambda: webbrowser.open(url)).start()
    app.run(host=host, port=port, debug=False, use_reloader=False, threaded=True)
