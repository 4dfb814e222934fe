#!/usr/bin/env python3
"""
Standalone script to run the catalog API with uvicorn
"""
import os
import sys
from pathlib import Path

# Add current directory to Python path
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8080))
    env = os.getenv("NODE_ENV", "development")
    reload = env == "development"

    print(f"Starting gift box catalog on {host}:{port} (env={env}, reload={reload})")
    print(f"API Documentation: http://{host}:{port}/api/docs")
    print(f"Bulk import template: http://{host}:{port}/api/v1/kidsgiftboxes/bulkimport/template")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="debug" if reload else "info"
    )
