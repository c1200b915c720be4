"""
Script untuk inisialisasi proyek
Membuat direktori dan file konfigurasi yang diperlukan
"""
import os
import shutil
from pathlib import Path


def init_project():
    """Initialize project structure"""
    print("Menginisialisasi proyek Ujian Terpantau...")
    
    # Create directories
    directories = [
        "data",
        "logs",
        "config"
    ]
    
    for directory in directories:
        Path(directory).mkdir(parents=True, exist_ok=True)
        print(f"[OK] Created directory: {directory}/")
    
    # Copy config template if it doesn't exist
    template = "config/session_config_template.json"
    target = "config/session_config.json"
    if not os.path.exists(target) and os.path.exists(template):
        shutil.copy(template, target)
        print(f"[OK] Created config file: {target}")
    elif not os.path.exists(target):
        print(f"[WARNING] Template not found: {template}")
    else:
        print(f"[OK] Config file already exists: {target}")
    
    print("\n[OK] Inisialisasi selesai!")
    print("\nLangkah selanjutnya:")
    print("1. Edit config/session_config.json (remote_store, server, session)")
    print("2. Jalankan record server: python server_app/main.py")


if __name__ == "__main__":
    init_project()
