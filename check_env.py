#!/usr/bin/env python3
"""Helper script to check and create the .env file for the PTV service credentials."""

from pathlib import Path
import os
import sys

MASKED_KEYS = ("PLANNER_PTV_API_KEY",)

TEMPLATE = """# PTV Developer API key (required for geocoding and route optimization)
PLANNER_PTV_API_KEY=your-api-key-here

# API Configuration
PLANNER_API_PREFIX=/api
# PLANNER_FRONTEND_ALLOWED_ORIGINS - comma-separated or JSON array

# Optimization
PLANNER_MAX_STOPS=20
PLANNER_VEHICLES_PER_DEPOT=1
PLANNER_POLL_INTERVAL_SECONDS=1
# PLANNER_POLL_TIMEOUT_SECONDS=600
PLANNER_STOP_WHEN_FULLY_SCHEDULED=false
"""


def _mask(line: str) -> str:
    name, _, value = line.partition("=")
    value = value.strip()
    if name.strip() in MASKED_KEYS and len(value) > 8:
        return f"{name}={value[:4]}...{value[-4:]}"
    return line


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Route Planner Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        print(f"❌ .env file NOT found at: {env_file}")
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"✅ Created template .env file at: {env_file}")
        print("⚠️  Please edit .env and add your PTV API key!")
        return

    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        print(_mask(line))
    print("-" * 60)
    print()

    if os.getenv("PLANNER_PTV_API_KEY"):
        print("✅ PLANNER_PTV_API_KEY set in environment")
    else:
        print("ℹ️  PLANNER_PTV_API_KEY not in environment, relying on .env")

    print()
    print("Testing config loading...")
    try:
        sys.path.insert(0, str(project_root / "src"))
        from routeplanner.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    print(f"   optimization service: {settings.optimization_base_url}")
    print(f"   geocoding service:    {settings.geocoding_base_url}")
    print(f"   max stops:            {settings.max_stops}")
    print()
    print("=" * 60)
    if settings.ptv_api_key:
        print("✅ SUCCESS: PTV API key is configured!")
    else:
        print("❌ ERROR: PTV API key is NOT configured")
        print("   Variables must start with the PLANNER_ prefix.")
    print("=" * 60)


if __name__ == "__main__":
    main()
