import logging
import threading
import uuid
from collections import OrderedDict

from flask import Flask, abort, jsonify, redirect, render_template_string, request, url_for

from .clients import CatalogClient, FunctionsClient
from .config import ReaderConfig
from .models import ORIGINAL, SUPPORTED_LANGUAGES, Book
from .reader import ReaderShell

logger = logging.getLogger(__name__)

# --- HELPER FUNCTIONS ---


def book_from_args(volume_id, args):
    authors = args.getlist("author")
    if not authors and args.get("authors"):
        authors = [a.strip() for a in args["authors"].split(",")]
    return Book.from_dict({
        "id": volume_id,
        "title": args.get("title") or volume_id,
        "authors": authors,
        "description": args.get("description", ""),
        "imageUrl": args.get("imageUrl", ""),
        "previewLink": args.get("previewLink", ""),
    })


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Expected a JSON object")
    return data


def create_app(config=None, catalog=None, functions=None):
    config = config or ReaderConfig.from_env()
    catalog = catalog or CatalogClient(config.catalog_url, config.catalog_key, config.timeout)
    functions = functions or FunctionsClient(config.functions_url, config.functions_key, config.timeout)

    app = Flask(__name__)
    # Most recently used reader last; the oldest is evicted past max_readers
    readers = app.extensions.setdefault("shelfreader", OrderedDict())
    readers_lock = threading.Lock()

    def open_reader(book, back_url):
        reader_id = uuid.uuid4().hex
        shell = ReaderShell(
            book,
            catalog,
            functions,
            on_back=lambda: back_url,
            page_size=config.page_size,
        )
        shell.load()
        with readers_lock:
            readers[reader_id] = shell
            while len(readers) > config.max_readers:
                evicted_id, evicted = readers.popitem(last=False)
                evicted.close()
                logger.info("Evicted idle reader %s", evicted_id)
        logger.info("Opened reader %s for %s", reader_id, book.id)
        return reader_id, shell

    def get_reader(reader_id):
        with readers_lock:
            shell = readers.get(reader_id)
            if shell is not None:
                readers.move_to_end(reader_id)
        if shell is None or shell.closed:
            abort(404, description="Reader not found")
        return shell

    def state(reader_id, shell, **extra):
        payload = shell.snapshot()
        payload["readerId"] = reader_id
        payload.update(extra)
        return jsonify(payload)

    @app.errorhandler(400)
    @app.errorhandler(404)
    @app.errorhandler(409)
    def error_response(err):
        return jsonify({"error": err.description}), err.code

    # --- ROUTES ---

    @app.route('/')
    def index():
        volume_id = request.args.get('volume', '').strip()
        if volume_id:
            return redirect(url_for('read', volume_id=volume_id))
        return render_template_string(INDEX_TEMPLATE)

    @app.route('/read/<volume_id>')
    def read(volume_id):
        try:
            book = book_from_args(volume_id, request.args)
        except ValueError as exc:
            abort(400, description=str(exc))
        reader_id, shell = open_reader(book, request.args.get('back') or url_for('index'))
        initial_state = dict(shell.snapshot(), readerId=reader_id)
        return render_template_string(
            READER_TEMPLATE,
            initial_state=initial_state,
            languages=SUPPORTED_LANGUAGES,
            original=ORIGINAL,
        )

    @app.route('/api/readers', methods=['POST'])
    def create_reader():
        data = json_body()
        try:
            book = Book.from_dict(data.get('book', data))
        except ValueError as exc:
            abort(400, description=str(exc))
        reader_id, shell = open_reader(book, data.get('backUrl') or url_for('index'))
        return state(reader_id, shell), 201

    @app.route('/api/readers/<reader_id>', methods=['GET'])
    def get_state(reader_id):
        return state(reader_id, get_reader(reader_id))

    @app.route('/api/readers/<reader_id>/page', methods=['POST'])
    def change_page(reader_id):
        shell = get_reader(reader_id)
        data = json_body()
        try:
            if 'page' in data:
                shell.go_to_page(int(data['page']))
            else:
                shell.change_page(int(data.get('delta', 0)))
        except (TypeError, ValueError):
            abort(400, description="Invalid page")
        return state(reader_id, shell)

    @app.route('/api/readers/<reader_id>/language', methods=['POST'])
    def select_language(reader_id):
        shell = get_reader(reader_id)
        code = str(json_body().get('language') or '')
        try:
            applied = shell.select_language(code)
        except ValueError as exc:
            abort(400, description=str(exc))
        return state(reader_id, shell, applied=applied)

    @app.route('/api/readers/<reader_id>/selection', methods=['POST'])
    def selection(reader_id):
        shell = get_reader(reader_id)
        opened = shell.handle_selection(str(json_body().get('text') or ''))
        return state(reader_id, shell, opened=opened)

    @app.route('/api/readers/<reader_id>/chat', methods=['POST'])
    def chat(reader_id):
        shell = get_reader(reader_id)
        message = str(json_body().get('message') or '')
        if not message.strip():
            abort(400, description="Message is empty")
        if shell.chat.is_loading:
            abort(409, description="A chat request is already in progress")
        reply = shell.chat.send(message)
        return state(reader_id, shell, sent=reply is not None)

    @app.route('/api/readers/<reader_id>/chat/toggle', methods=['POST'])
    def toggle_chat(reader_id):
        shell = get_reader(reader_id)
        data = request.get_json(silent=True)
        shell.toggle_chat(data.get('show') if isinstance(data, dict) else None)
        return state(reader_id, shell)

    @app.route('/api/readers/<reader_id>/notices/<int:notice_id>', methods=['DELETE'])
    def dismiss_notice(reader_id, notice_id):
        shell = get_reader(reader_id)
        if not shell.dismiss_notice(notice_id):
            abort(404, description="Notice not found")
        return state(reader_id, shell)

    @app.route('/api/readers/<reader_id>/back', methods=['POST'])
    def back(reader_id):
        shell = get_reader(reader_id)
        back_url = shell.back()
        with readers_lock:
            readers.pop(reader_id, None)
        logger.info("Closed reader %s", reader_id)
        return jsonify({"closed": True, "backUrl": back_url})

    return app


# --- TEMPLATES ---

INDEX_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Shelf Reader</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; background: #f8fafc; color: #1e293b; display: flex; justify-content: center; padding-top: 80px; }
        form { background: white; padding: 30px; border-radius: 12px; border: 1px solid #e2e8f0; display: flex; gap: 10px; }
        input { padding: 8px; border: 1px solid #ccc; border-radius: 6px; width: 260px; }
        button { background: #1e293b; color: white; border: none; padding: 8px 12px; border-radius: 6px; cursor: pointer; }
    </style>
</head>
<body>
    <form method="get" action="/">
        <input name="volume" placeholder="Google Books volume id" required>
        <button type="submit">Open</button>
    </form>
</body>
</html>
"""

READER_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ initial_state.book.title }}</title>
    <style>
        :root {
            --primary: #2563eb;
            --primary-light: #eff6ff;
            --bg-color: #f8fafc;
            --sidebar-bg: #ffffff;
            --text-color: #1e293b;
            --muted: #64748b;
            --border-color: #e2e8f0;
            --danger: #ef4444;
        }

        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
            margin: 0;
            height: 100vh;
            display: flex;
            flex-direction: column;
            color: var(--text-color);
            background-color: var(--bg-color);
            overflow: hidden;
        }

        /* --- HEADER --- */
        header {
            display: flex;
            justify-content: space-between;
            align-items: center;
            padding: 15px 30px;
            background: var(--sidebar-bg);
            border-bottom: 1px solid var(--border-color);
        }
        header h1 { margin: 0; font-size: 1.1rem; }
        header p { margin: 2px 0 0; font-size: 0.9rem; color: var(--muted); }
        .header-left, .header-right { display: flex; align-items: center; gap: 12px; }

        /* --- LAYOUT --- */
        #layout { flex: 1; display: flex; overflow: hidden; }
        #main-container {
            flex: 3;
            padding: 30px 40px;
            overflow-y: auto;
            display: flex;
            flex-direction: column;
        }
        #sidebar {
            flex: 1;
            background: var(--sidebar-bg);
            border-left: 1px solid var(--border-color);
            display: none;
            flex-direction: column;
            padding: 20px;
        }
        body.chat-open #sidebar { display: flex; }

        /* --- TEXT DISPLAY --- */
        #text-display {
            line-height: 1.8;
            font-size: 1.15rem;
            font-family: Georgia, serif;
            max-width: 800px;
            margin: 0 auto;
            white-space: pre-wrap;
        }

        /* --- CONTROLS --- */
        .btn {
            background: var(--text-color);
            color: white;
            border: none;
            padding: 8px 12px;
            border-radius: 6px;
            cursor: pointer;
            font-size: 0.9rem;
        }
        .btn:disabled { opacity: 0.5; cursor: default; }
        .btn-outline { background: white; color: var(--text-color); border: 1px solid var(--border-color); }
        select { padding: 7px; border-radius: 6px; border: 1px solid var(--border-color); }
        #translating { color: var(--muted); font-size: 0.9rem; display: none; }
        body.translating #translating { display: inline; }

        .nav-controls {
            display: flex;
            justify-content: center;
            align-items: center;
            gap: 15px;
            margin: 20px auto;
            padding: 10px;
            background: white;
            border-radius: 30px;
            box-shadow: 0 2px 10px rgba(0,0,0,0.05);
            width: fit-content;
        }

        /* --- CHAT --- */
        #messages { flex: 1; overflow-y: auto; display: flex; flex-direction: column; gap: 10px; }
        .msg { max-width: 85%; padding: 10px 14px; border-radius: 14px; font-size: 0.9rem; line-height: 1.5; white-space: pre-wrap; }
        .msg.assistant { background: var(--primary-light); align-self: flex-start; }
        .msg.user { background: var(--primary); color: white; align-self: flex-end; }
        #chat-input-row { display: flex; gap: 8px; margin-top: 10px; }
        #chat-input { flex: 1; padding: 8px; border: 1px solid var(--border-color); border-radius: 6px; }

        /* --- NOTICES --- */
        #notices { position: fixed; bottom: 20px; right: 20px; display: flex; flex-direction: column; gap: 8px; z-index: 100; }
        .notice { background: white; border: 1px solid var(--border-color); border-radius: 8px; padding: 10px 14px; box-shadow: 0 4px 15px rgba(0,0,0,0.1); cursor: pointer; min-width: 240px; }
        .notice.destructive { border-color: var(--danger); color: var(--danger); }
        .notice small { display: block; color: var(--muted); }
    </style>
</head>
<body>
    <header>
        <div class="header-left">
            <button class="btn btn-outline" onclick="goBack()">← Back</button>
            <div>
                <h1>{{ initial_state.book.title }}</h1>
                <p>{{ initial_state.book.authors | join(", ") }}</p>
            </div>
        </div>
        <div class="header-right">
            <span id="translating">Translating...</span>
            <select id="language" onchange="selectLanguage(this.value)">
                <option value="{{ original }}">Original</option>
                {% for code, name in languages.items() %}
                <option value="{{ code }}">{{ name }}</option>
                {% endfor %}
            </select>
            <button class="btn" id="chat-toggle" onclick="toggleChat()">Ask AI</button>
        </div>
    </header>

    <div id="layout">
        <div id="main-container">
            <div class="nav-controls">
                <button class="btn" onclick="changePage(-1)">← Prev</button>
                <span style="font-weight: 600; color: var(--muted); font-size: 0.9rem;">
                    Page <input type="number" id="page-num" value="1" style="width: 40px; text-align: center;" onchange="jumpToPage()">
                    of <span id="total-pages">0</span>
                </span>
                <button class="btn" onclick="changePage(1)">Next →</button>
            </div>
            <div id="text-display" onmouseup="handleTextSelection()"></div>
        </div>

        <div id="sidebar">
            <h3 style="margin: 0 0 4px 0;">AI Reading Assistant</h3>
            <div style="color: var(--muted); font-size: 0.85rem; margin-bottom: 15px;">Ask me anything about the book</div>
            <div id="messages"></div>
            <div id="chat-input-row">
                <input id="chat-input" placeholder="Ask a question..." onkeydown="handleKeyPress(event)">
                <button class="btn" id="send-btn" onclick="sendMessage()">Send</button>
            </div>
        </div>
    </div>

    <div id="notices"></div>

    <script>
        let state = {{ initial_state | tojson }};
        const base = `/api/readers/${state.readerId}`;
        let chatLoading = false;

        async function api(path, method, body) {
            const res = await fetch(base + path, {
                method: method || 'POST',
                headers: {'Content-Type': 'application/json'},
                body: body === undefined ? undefined : JSON.stringify(body)
            });
            const data = await res.json();
            if (data.error) throw new Error(data.error);
            return data;
        }

        function render(next) {
            state = next;
            document.getElementById('text-display').innerText = state.text;
            document.getElementById('page-num').value = state.page + 1;
            document.getElementById('total-pages').innerText = state.pageCount;
            document.getElementById('language').value = state.language;
            document.body.classList.toggle('translating', state.isTranslating);
            document.body.classList.toggle('chat-open', state.showChat);
            document.getElementById('chat-toggle').innerText = state.showChat ? 'Close Chat' : 'Ask AI';
            renderMessages();
            renderNotices();
        }

        function renderMessages() {
            const list = document.getElementById('messages');
            list.innerHTML = '';
            state.chat.messages.forEach(m => {
                const div = document.createElement('div');
                div.className = `msg ${m.role}`;
                div.innerText = m.content;
                list.appendChild(div);
            });
            if (chatLoading) {
                const div = document.createElement('div');
                div.className = 'msg assistant';
                div.innerText = '...';
                list.appendChild(div);
            }
            list.scrollTop = list.scrollHeight;
            document.getElementById('send-btn').disabled = chatLoading;
        }

        function renderNotices() {
            const box = document.getElementById('notices');
            box.innerHTML = '';
            state.notices.forEach(n => {
                const div = document.createElement('div');
                div.className = `notice ${n.variant}`;
                div.innerHTML = '<strong></strong><small></small>';
                div.querySelector('strong').innerText = n.title;
                div.querySelector('small').innerText = n.description;
                div.onclick = () => dismissNotice(n.id);
                box.appendChild(div);
                setTimeout(() => dismissNotice(n.id), 5000);
            });
        }

        async function refresh(promise) {
            try { render(await promise); } catch (e) { alert(e.message); }
        }

        function changePage(delta) {
            if (state.language !== '{{ original }}') document.body.classList.add('translating');
            refresh(api('/page', 'POST', { delta }));
        }
        function jumpToPage() {
            const page = parseInt(document.getElementById('page-num').value) - 1;
            refresh(api('/page', 'POST', { page }));
        }

        function selectLanguage(language) {
            if (language !== '{{ original }}') document.body.classList.add('translating');
            refresh(api('/language', 'POST', { language }));
        }

        function handleTextSelection() {
            const text = (window.getSelection() || '').toString().trim();
            if (!text) return;
            refresh(api('/selection', 'POST', { text })).then(() => {
                document.getElementById('chat-input').value = state.chat.draft;
            });
        }

        function toggleChat() { refresh(api('/chat/toggle', 'POST', {})); }

        async function sendMessage() {
            const input = document.getElementById('chat-input');
            const message = input.value;
            if (!message.trim() || chatLoading) return;
            input.value = '';
            chatLoading = true;
            state.chat.messages.push({ role: 'user', content: message });
            renderMessages();
            try {
                render(await api('/chat', 'POST', { message }));
            } catch (e) {
                alert(e.message);
            } finally {
                chatLoading = false;
                renderMessages();
            }
        }

        function handleKeyPress(e) {
            if (e.key === 'Enter' && !e.shiftKey) {
                e.preventDefault();
                sendMessage();
            }
        }

        async function dismissNotice(id) {
            if (!state.notices.some(n => n.id === id)) return;
            try { render(await api(`/notices/${id}`, 'DELETE')); } catch (e) { /* already gone */ }
        }

        async function goBack() {
            const data = await api('/back', 'POST', {});
            window.location.href = data.backUrl;
        }

        render(state);
    </script>
</body>
</html>
"""
