from decider import create_limiter, registry, socketio


def start_sweeper(app) -> None:
    """Start the idle-expiry sweep loop as a Socket.IO background task.

    No-ops in TESTING mode unless ENABLE_SWEEPER_IN_TESTS is set.
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SWEEPER_IN_TESTS'):
        return
    interval = int(app.config.get('SWEEP_INTERVAL_SEC', 30))
    app.logger.info(f"[sweep-start] interval={interval}s idle_timeout={registry.idle_timeout}s")
    socketio.start_background_task(_worker, app, interval)


def _worker(app, interval: int) -> None:
    while True:
        socketio.sleep(interval)
        run_sweep(app)


def run_sweep(app):
    with app.app_context():
        try:
            removed = registry.sweep_expired()
            create_limiter.prune()
        except Exception:
            app.logger.exception("[sweep-error] sweep failed")
            return []
        if removed:
            app.logger.info(f"[sweep] removed={len(removed)} remaining={len(registry)}")
        return removed
