"""
JumpEvo Server  –  Flask + Server-Sent Events
=============================================

Endpoints:
  POST /start        Start (or restart) training with JSON config body
  POST /pause        Suspend at the next generation boundary
  POST /resume       Continue a paused run
  POST /stop         Stop the running training
  GET  /stream       SSE stream – browser subscribes here for live data
  GET  /status       Current trainer state as JSON

Run:
  python server.py
  # → http://localhost:5000
"""

import threading
import queue
import json

from flask import Flask, Response, request, jsonify

from trainer import Trainer, TrainerState
from config import (
    POPULATION, MAX_GENERATIONS, MUTATION_RATE, MUTATION_MODE,
    PLAYFIELD_WIDTH, PLAYFIELD_HEIGHT, ConfigError,
)

# ──────────────────────────────────────────────────────────────────────────────
app = Flask(__name__)

# Global training state
_train_thread: threading.Thread | None = None
_trainer:      Trainer | None = None
_gen_queue     = queue.Queue(maxsize=200)   # holds dicts to stream
_train_status  = {
    "state":      TrainerState.IDLE.value,
    "generation": 0,
    "max_gen":    0,
    "best":       0.0,
    "cfg":        {},
}
_status_lock   = threading.Lock()


# ──────────────────────────────────────────────────────────────────────────────
# CORS helper – allow a browser front-end on any origin to call us
# ──────────────────────────────────────────────────────────────────────────────

@app.after_request
def add_cors(response):
    response.headers["Access-Control-Allow-Origin"]  = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    return response

@app.route("/", methods=["OPTIONS"])
@app.route("/<path:p>", methods=["OPTIONS"])
def preflight(p=""):
    return Response(status=200)


@app.errorhandler(ConfigError)
def config_error(exc):
    return jsonify({"error": str(exc)}), 400


# ──────────────────────────────────────────────────────────────────────────────
# Training thread
# ──────────────────────────────────────────────────────────────────────────────

def _build_cfg(data: dict) -> dict:
    """Merge request JSON with defaults."""
    try:
        seed = data.get("seed")
        return {
            "width":           float(data.get("width",          PLAYFIELD_WIDTH)),
            "height":          float(data.get("height",         PLAYFIELD_HEIGHT)),
            "population":      int(data.get("population",       POPULATION)),
            "max_generations": int(data.get("maxGenerations",   MAX_GENERATIONS)),
            "mutation_rate":   float(data.get("mutationRate",   MUTATION_RATE)),
            "mutation_mode":   str(data.get("mutationMode",     MUTATION_MODE)),
            "seed":            None if seed is None else int(seed),
            # ghost rendering of the swarm; echoed back, never used by training
            "blend":           bool(data.get("blend",           False)),
        }
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"malformed training config: {exc}") from exc


def _push(out_q: queue.Queue, payload: dict):
    """Non-blocking put; drop oldest frame if queue full."""
    while True:
        try:
            out_q.put_nowait(payload)
            return
        except queue.Full:
            try:
                out_q.get_nowait()
            except queue.Empty:
                pass


def _make_trainer(cfg: dict, out_q: queue.Queue) -> Trainer:

    def on_gen(gen_idx, stats, ranked):
        best = ranked[0]
        payload = {
            "type":       "generation",
            "gen":        gen_idx + 1,
            "maxGen":     cfg["max_generations"],
            "best":       round(stats["best"], 4),
            "avg":        round(stats["mean"], 4),
            "timeouts":   stats["timeouts"],
            "failed":     stats["failed"],
            "bestGenome": [round(g, 6) for g in best.genome],
            "blend":      cfg["blend"],
        }

        with _status_lock:
            if out_q is _gen_queue:    # skip runs replaced by a later /start
                _train_status["generation"] = gen_idx + 1
                _train_status["best"] = max(_train_status["best"], stats["best"])

        _push(out_q, payload)

    return Trainer(
        population      = cfg["population"],
        max_generations = cfg["max_generations"],
        mutation_rate   = cfg["mutation_rate"],
        mutation_mode   = cfg["mutation_mode"],
        width           = cfg["width"],
        height          = cfg["height"],
        seed            = cfg["seed"],
        on_gen_callback = on_gen,
        verbose         = False,
    )


def _train_worker(trainer: Trainer, out_q: queue.Queue):
    """Run a full training in a background thread."""
    best = None
    try:
        best = trainer.run()
    finally:
        with _status_lock:
            if out_q is _gen_queue:
                _train_status["state"] = trainer.state.value
        done = {"type": "done", "gen": trainer.generation,
                "stopped": trainer.stopped}
        if best is not None:
            done["bestGenome"]  = best.genome
            done["bestFitness"] = best.fitness
        _push(out_q, done)


def _current_state() -> str:
    if _trainer is None:
        return TrainerState.IDLE.value
    return _trainer.state.value


# ──────────────────────────────────────────────────────────────────────────────
# Routes
# ──────────────────────────────────────────────────────────────────────────────

@app.route("/start", methods=["POST"])
def start():
    global _train_thread, _trainer, _gen_queue

    cfg = _build_cfg(request.get_json(silent=True) or {})
    out_q = queue.Queue(maxsize=200)
    trainer = _make_trainer(cfg, out_q)   # raises ConfigError → 400

    # Stop any running training
    if _trainer is not None:
        _trainer.stop()
    if _train_thread and _train_thread.is_alive():
        _train_thread.join(timeout=3)

    # Reset
    with _status_lock:
        _gen_queue = out_q
        _trainer   = trainer
        _train_status["generation"] = 0
        _train_status["best"]       = 0.0
        _train_status["cfg"]        = cfg
        _train_status["max_gen"]    = cfg["max_generations"]

    _train_thread = threading.Thread(
        target=_train_worker,
        args=(_trainer, _gen_queue),
        daemon=True,
    )
    _train_thread.start()
    return jsonify({"status": "started", "cfg": cfg})


@app.route("/pause", methods=["POST"])
def pause():
    if _trainer is None:
        return jsonify({"error": "no training to pause"}), 409
    _trainer.pause()
    return jsonify({"status": "pausing"})


@app.route("/resume", methods=["POST"])
def resume():
    if _trainer is None:
        return jsonify({"error": "no training to resume"}), 409
    _trainer.resume()
    return jsonify({"status": "resumed"})


@app.route("/stop", methods=["POST"])
def stop():
    if _trainer is not None:
        _trainer.stop()
    return jsonify({"status": "stopped"})


@app.route("/status", methods=["GET"])
def status():
    with _status_lock:
        payload = dict(_train_status)
    payload["state"] = _current_state()
    return jsonify(payload)


@app.route("/stream", methods=["GET"])
def stream():
    """SSE endpoint – browser subscribes and receives each generation as an event."""

    def event_gen():
        # Send a hello so the browser knows it's connected
        yield "data: {\"type\": \"connected\"}\n\n"

        while True:
            try:
                # current run, even if the client connected before /start
                payload = _gen_queue.get(timeout=1)
                yield f"data: {json.dumps(payload)}\n\n"
                if payload.get("type") == "done":
                    break
            except queue.Empty:
                # Keep-alive ping
                yield "data: {\"type\": \"ping\"}\n\n"

    return Response(
        event_gen(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",    # disable nginx buffering if behind proxy
        },
    )


# ──────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    print("=" * 50)
    print("  JumpEvo Server  →  http://localhost:5000")
    print("  SSE stream      →  http://localhost:5000/stream")
    print("=" * 50)
    app.run(host="0.0.0.0", port=5000, threaded=True, debug=False)
