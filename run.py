# -*- coding: utf-8 -*-
"""
Facilitador de Execucao - Cert Simulados API

Execute este arquivo na raiz do projeto para subir o backend.
"""

import os
import sys
import traceback

from core.error_monitor import setup_global_error_hooks, log_exception, log_message, log_event
from core.app_paths import ensure_runtime_dirs, get_database_url

# Habilitar captura global de erros
setup_global_error_hooks()
log_message("API startup", f"Python {sys.version.split()[0]}")
ensure_runtime_dirs()

try:
    import uvicorn
except ImportError:
    print("[ERRO] uvicorn nao instalado!")
    print("        pip install -e .")
    sys.exit(1)

print(f"[INFO] Banco de dados: {get_database_url()}")
print("[INFO] Iniciando Cert Simulados API...")

try:
    log_event("api_start", f"python={sys.version.split()[0]}")
    uvicorn.run(
        "backend.app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
except Exception as ex:
    log_exception(ex, "run.py uvicorn.run")
    print(f"[ERRO] Falha ao iniciar API: {ex}")
    traceback.print_exc()
    sys.exit(1)
