"""
Entry point for the MaskWatch desktop monitor.

Run: python main.py  (or the ``maskwatch`` console script)
Weights: MW_WEIGHTS=path/to/mask_detector.pt (default weights/mask_detector.pt)
"""
from __future__ import annotations

import logging
import sys
import warnings

from maskwatch.application.container import Container
from maskwatch.core.observability.logging_config import setup_logging
from maskwatch.core.version import get_version_string
from maskwatch.ui import (
    MonitorSignals,
    MonitorViewModel,
    MonitorWindow,
    create_application,
    install_error_boundary,
    run_application,
)

log = logging.getLogger("maskwatch")


def main() -> None:
    # PyTorch CUDA использует устаревший pynvml; предупреждение не исправить из приложения
    warnings.filterwarnings("ignore", category=FutureWarning, module="torch.cuda")
    log_file = setup_logging()
    log.info("MaskWatch %s starting (log file: %s)", get_version_string(), log_file)
    app = create_application()

    container = Container()
    signals = MonitorSignals()
    install_error_boundary(signals.unhandled_error.emit)
    view_model = MonitorViewModel(container, signals)

    window = MonitorWindow(view_model)
    app.aboutToQuit.connect(container.shutdown)
    window.show()
    window.start()

    run_application(app)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
