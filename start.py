"""
Startup script for the shipment report API.
"""

import os
import subprocess
import logging
import socket

# Set up comprehensive logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


def is_port_in_use(port):
    """Check if a port is already in use"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(('localhost', port)) == 0


def find_available_port(start_port, max_attempts=10):
    """Find an available port starting from start_port"""
    port = start_port
    for _ in range(max_attempts):
        if not is_port_in_use(port):
            return port
        port += 1
    logger.warning(f"Could not find available port after {max_attempts} attempts")
    return start_port  # Return original port as last resort


def run_api(port=3000):
    """Run the FastAPI app"""
    api_port = port
    if is_port_in_use(api_port):
        api_port = find_available_port(api_port)
        logger.info(f"Port {port} is in use, using port {api_port} instead")

    logger.info(f"🚀 Starting Shipment Report API on port {api_port}...")
    try:
        subprocess.run([
            "uvicorn", "api:app",
            "--host", "0.0.0.0",
            "--port", str(api_port)
        ], check=True)
    except subprocess.CalledProcessError as e:
        logger.error(f"❌ API failed: {e}")
        raise


def main():
    port = int(os.environ.get('PORT', 3000))
    logger.info(f"PORT environment variable: {port}")
    run_api(port)


if __name__ == "__main__":
    main()
