from __future__ import annotations

import json

from config.settings import Settings


def render_page(settings: Settings) -> str:
    speech = {
        "rate": settings.speech_rate,
        "pitch": settings.speech_pitch,
        "volume": settings.speech_volume,
    }
    return HTML_TEMPLATE.replace("__SPEECH_SETTINGS__", json.dumps(speech))


# --- HTML Frontend Template ---
HTML_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>TalkToPic</title>
  <style>
    html, body {
      box-sizing: border-box;
      margin: 0;
      min-height: 100vh;
      font-family: system-ui, sans-serif;
      background: linear-gradient(135deg, #eff6ff, #e0e7ff);
      color: #1f2937;
    }
    .page { max-width: 72rem; margin: 0 auto; padding: 1rem; }
    .header { text-align: center; margin-bottom: 2rem; }
    .header h1 { font-size: 2.25rem; margin-bottom: 0.5rem; }
    .card {
      background: white;
      border-radius: 0.75rem;
      padding: 1.25rem;
      margin-bottom: 1.5rem;
      box-shadow: 0 1px 3px rgba(0, 0, 0, 0.1);
    }
    .row { display: flex; gap: 0.5rem; align-items: center; }
    .between { justify-content: space-between; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 1.5rem; }
    .hidden { display: none !important; }
    .muted { color: #6b7280; font-size: 0.875rem; }
    input, textarea, select {
      flex: 1;
      padding: 0.5rem;
      border: 1px solid #d1d5db;
      border-radius: 0.5rem;
      font: inherit;
    }
    button {
      padding: 0.5rem 1rem;
      border: none;
      border-radius: 0.5rem;
      background: #4f46e5;
      color: white;
      cursor: pointer;
    }
    button:disabled { opacity: 0.5; cursor: not-allowed; }
    button.outline { background: white; color: #1f2937; border: 1px solid #d1d5db; }
    button.danger { background: #dc2626; }
    .tabs { display: grid; grid-template-columns: 1fr 1fr; gap: 0.25rem; margin-bottom: 1rem; }
    .tabs button { background: #f3f4f6; color: #1f2937; }
    .tabs button.active { background: white; border: 1px solid #d1d5db; }
    .media { border-radius: 0.5rem; overflow: hidden; margin-top: 1rem; }
    .media img, .media video { width: 100%; max-height: 24rem; object-fit: contain; display: block; }
    .media.video { background: black; }
    .badge {
      display: inline-block;
      padding: 0.125rem 0.5rem;
      border-radius: 9999px;
      font-size: 0.75rem;
      background: #e5e7eb;
      margin-left: 0.5rem;
    }
    .chat { height: 500px; display: flex; flex-direction: column; }
    .messages { flex: 1; overflow-y: auto; display: flex; flex-direction: column; gap: 0.75rem; margin-bottom: 1rem; }
    .msg { padding: 0.75rem; border-radius: 0.5rem; white-space: pre-wrap; }
    .msg.user { background: #3b82f6; color: white; margin-left: 2rem; }
    .msg.assistant { background: #f3f4f6; margin-right: 2rem; }
    .msg .who { font-size: 0.875rem; font-weight: 600; margin-bottom: 0.25rem; display: flex; justify-content: space-between; }
    .msg .who button { padding: 0 0.4rem; background: transparent; color: inherit; }
    .empty { text-align: center; color: #6b7280; padding: 2rem 0; }
    @media (max-width: 1024px) { .grid { grid-template-columns: 1fr; } }
  </style>
</head>
<body>
  <div class="page">
    <div class="header">
      <h1>TalkToPic</h1>
      <p class="muted">AI-powered visual conversation - Upload an image or stream live video!</p>
    </div>

    <div class="card" id="keyCard">
      <h3>Setup Your Gemini API Key</h3>
      <div class="row">
        <input type="password" id="apiKey" placeholder="Enter your Gemini API key...">
        <button id="apiKeyBtn" onclick="submitApiKey()" disabled>Set API Key</button>
      </div>
      <p class="muted">Get your free API key from
        <a href="https://aistudio.google.com/app/apikey" target="_blank" rel="noopener noreferrer">Google AI Studio</a>
      </p>
      <p class="muted" id="keyError"></p>
    </div>

    <div id="workspace" class="hidden">
      <div class="card row between">
        <div>
          <strong>Voice Mode</strong>
          <div class="muted">Enable audio responses from AI</div>
        </div>
        <input type="checkbox" id="voiceToggle" onchange="toggleVoice(this.checked)" style="flex: 0">
      </div>

      <div class="grid">
        <div class="card">
          <h3>Media Input</h3>
          <div class="tabs">
            <button id="tabImage" class="active" onclick="selectSource('image')">Image Upload</button>
            <button id="tabVideo" onclick="selectSource('video')">Live Video</button>
          </div>

          <div id="imagePanel">
            <button class="outline" style="width: 100%" onclick="document.getElementById('fileInput').click()">Choose Image</button>
            <input type="file" id="fileInput" accept="image/*" class="hidden" onchange="uploadImage(this.files[0])">
            <div class="media hidden" id="previewBox"><img id="preview" alt="Uploaded"></div>
          </div>

          <div id="videoPanel" class="hidden">
            <div class="row">
              <button id="videoBtn" style="flex: 1" onclick="toggleVideo()">Start Video</button>
              <button id="captureBtn" class="outline hidden" onclick="captureFrame()">Capture</button>
            </div>
            <div id="videoBox" class="hidden">
              <div class="media video"><video id="webcamVideo" autoplay playsinline muted></video></div>
              <p class="muted" style="text-align: center">Live Video Feed - <span id="frameCount">0</span> frames captured</p>
            </div>
            <canvas id="captureCanvas" class="hidden"></canvas>
          </div>
        </div>

        <div class="card chat">
          <h3>Conversation
            <span class="badge hidden" id="readyBadge">Ready</span>
            <span class="badge hidden" id="voiceBadge">Voice Mode</span>
            <span class="badge hidden" id="liveBadge">Live Video</span>
          </h3>
          <div class="messages" id="messages"></div>
          <select id="promptSelect" class="hidden" onchange="selectPrompt(this.value)">
            <option value="">Choose a quick prompt or type your own...</option>
          </select>
          <div class="row" style="margin-top: 0.75rem">
            <textarea id="chatInput" rows="2" disabled></textarea>
            <button id="sendBtn" onclick="sendMessage()" disabled>Send</button>
          </div>
        </div>
      </div>
    </div>
  </div>

  <script>
    const SPEECH = __SPEECH_SETTINGS__;
    let state = null;
    let messages = [];
    let prompts = [];
    let stream = null;
    let loading = false;
    let speaking = false;

    async function api(path, options) {
      const response = await fetch(path, options);
      const data = await response.json().catch(() => ({}));
      if (!response.ok) {
        throw new Error(data.detail || ("Request failed with status " + response.status));
      }
      return data;
    }

    function jsonBody(method, body) {
      return { method: method, headers: { "Content-Type": "application/json" }, body: JSON.stringify(body) };
    }

    function sessionPath(suffix) {
      return "/api/session/" + state.session_id + (suffix || "");
    }

    async function init() {
      state = await api("/api/session", { method: "POST" });
      prompts = await api("/api/prompts");
      const select = document.getElementById("promptSelect");
      prompts.forEach(p => {
        const option = document.createElement("option");
        option.value = p.value;
        option.textContent = p.label;
        select.appendChild(option);
      });
      document.getElementById("apiKey").addEventListener("input", e => {
        document.getElementById("apiKeyBtn").disabled = !e.target.value.trim();
      });
      const input = document.getElementById("chatInput");
      input.addEventListener("keypress", e => {
        if (e.key === "Enter" && !e.shiftKey) {
          e.preventDefault();
          sendMessage();
        }
      });
      input.addEventListener("input", () => {
        const chosen = prompts.find(p => p.value === select.value);
        if (!chosen || chosen.label !== input.value) select.value = "";
        render();
      });
      render();
    }

    function applyState(next) {
      state = next;
      render();
    }

    async function submitApiKey() {
      const key = document.getElementById("apiKey").value;
      try {
        applyState(await api(sessionPath("/api-key"), jsonBody("POST", { api_key: key })));
        document.getElementById("keyError").textContent = "";
      } catch (error) {
        document.getElementById("keyError").textContent = error.message;
      }
    }

    async function toggleVoice(enabled) {
      applyState(await api(sessionPath("/voice"), jsonBody("PUT", { enabled: enabled })));
    }

    async function selectSource(source) {
      applyState(await api(sessionPath("/source"), jsonBody("PUT", { source: source })));
    }

    async function uploadImage(file) {
      if (!file || !file.type.startsWith("image/")) return;
      releaseStream();
      const form = new FormData();
      form.append("file", file);
      try {
        const next = await api(sessionPath("/image"), { method: "POST", body: form });
        document.getElementById("preview").src = next.preview;
        applyState(next);
      } catch (error) {
        alert(error.message);
      }
    }

    async function toggleVideo() {
      if (state.video_active) {
        releaseStream();
        applyState(await api(sessionPath("/video/stop"), { method: "POST" }));
        return;
      }
      try {
        stream = await navigator.mediaDevices.getUserMedia({ video: { width: 640, height: 480 } });
      } catch (error) {
        console.error("Error accessing webcam:", error);
        alert("Unable to access webcam. Please ensure you have granted camera permissions.");
        return;
      }
      document.getElementById("webcamVideo").srcObject = stream;
      document.getElementById("preview").removeAttribute("src");
      applyState(await api(sessionPath("/video/start"), { method: "POST" }));
    }

    function releaseStream() {
      if (stream) {
        stream.getTracks().forEach(track => track.stop());
        stream = null;
        document.getElementById("webcamVideo").srcObject = null;
      }
    }

    function grabFrame() {
      const video = document.getElementById("webcamVideo");
      const canvas = document.getElementById("captureCanvas");
      if (!stream || !video.videoWidth) return null;
      canvas.width = video.videoWidth;
      canvas.height = video.videoHeight;
      canvas.getContext("2d").drawImage(video, 0, 0, canvas.width, canvas.height);
      return { data_url: canvas.toDataURL("image/jpeg", 0.8), timestamp: new Date().toLocaleTimeString() };
    }

    async function captureFrame() {
      const frame = grabFrame();
      if (!frame) return;
      const result = await api(sessionPath("/video/frame"), jsonBody("POST", frame));
      state.frames_captured = result.frames_captured;
      render();
    }

    function selectPrompt(value) {
      const chosen = prompts.find(p => p.value === value);
      if (chosen) {
        document.getElementById("chatInput").value = chosen.label;
        render();
      }
    }

    async function sendMessage() {
      const input = document.getElementById("chatInput");
      const text = input.value.trim();
      if (!text || loading || !state.has_api_key) return;
      if (!state.ready) {
        alert("Please upload an image or start video mode first.");
        return;
      }
      const body = { message: text };
      if (state.source === "video" && state.video_active) {
        body.frame = grabFrame();
      }
      input.value = "";
      document.getElementById("promptSelect").value = "";
      messages.push({ role: "user", content: text });
      loading = true;
      render();
      try {
        const reply = await api(sessionPath("/chat"), jsonBody("POST", body));
        messages.push(reply);
        if (reply.speak) speakText(reply.content);
      } catch (error) {
        messages.push({ role: "assistant", content: error.message, is_error: true });
      } finally {
        loading = false;
        applyState(await api(sessionPath()));
      }
    }

    function speakText(text) {
      if (!("speechSynthesis" in window)) return;
      window.speechSynthesis.cancel();
      const utterance = new SpeechSynthesisUtterance(text);
      utterance.rate = SPEECH.rate;
      utterance.pitch = SPEECH.pitch;
      utterance.volume = SPEECH.volume;
      utterance.onstart = () => { speaking = true; renderMessages(); };
      utterance.onend = () => { speaking = false; renderMessages(); };
      utterance.onerror = () => { speaking = false; renderMessages(); };
      window.speechSynthesis.speak(utterance);
    }

    function stopSpeaking() {
      if ("speechSynthesis" in window) {
        window.speechSynthesis.cancel();
        speaking = false;
        renderMessages();
      }
    }

    function renderMessages() {
      const box = document.getElementById("messages");
      box.innerHTML = "";
      if (messages.length === 0 && !loading) {
        const empty = document.createElement("div");
        empty.className = "empty";
        empty.textContent = state.hint;
        box.appendChild(empty);
      }
      messages.forEach(message => {
        const div = document.createElement("div");
        div.className = "msg " + message.role;
        const who = document.createElement("div");
        who.className = "who";
        const name = document.createElement("span");
        name.textContent = message.role === "user" ? "You" : "AI";
        who.appendChild(name);
        if (message.role === "assistant" && state.voice_mode) {
          const btn = document.createElement("button");
          btn.textContent = speaking ? "Stop" : "Play";
          btn.onclick = () => speaking ? stopSpeaking() : speakText(message.content);
          who.appendChild(btn);
        }
        const body = document.createElement("div");
        body.textContent = message.content;
        div.appendChild(who);
        div.appendChild(body);
        box.appendChild(div);
      });
      if (loading) {
        const div = document.createElement("div");
        div.className = "msg assistant";
        div.textContent = "AI: " + state.loading_label;
        box.appendChild(div);
      }
      box.scrollTop = box.scrollHeight;
    }

    function render() {
      const show = (id, visible) => document.getElementById(id).classList.toggle("hidden", !visible);
      show("keyCard", !state.has_api_key);
      show("workspace", state.has_api_key);
      document.getElementById("tabImage").classList.toggle("active", state.source === "image");
      document.getElementById("tabVideo").classList.toggle("active", state.source === "video");
      show("imagePanel", state.source === "image");
      show("videoPanel", state.source === "video");
      show("previewBox", state.has_image && state.source === "image");
      show("videoBox", state.video_active);
      show("captureBtn", state.video_active);
      const videoBtn = document.getElementById("videoBtn");
      videoBtn.textContent = state.video_active ? "Stop Video" : "Start Video";
      videoBtn.className = state.video_active ? "danger" : "";
      document.getElementById("frameCount").textContent = state.frames_captured;
      show("readyBadge", state.ready);
      show("voiceBadge", state.voice_mode);
      show("liveBadge", state.video_active);
      show("promptSelect", state.ready);
      document.getElementById("voiceToggle").checked = state.voice_mode;
      const input = document.getElementById("chatInput");
      input.placeholder = state.placeholder;
      input.disabled = !state.ready || loading;
      document.getElementById("sendBtn").disabled = !input.value.trim() || !state.ready || loading;
      renderMessages();
    }

    window.addEventListener("beforeunload", () => {
      releaseStream();
      if (state) fetch(sessionPath(), { method: "DELETE", keepalive: true });
    });

    init();
  </script>
</body>
</html>
"""
