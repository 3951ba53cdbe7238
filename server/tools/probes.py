# server/tools/probes.py
from pydantic import BaseModel

# Probe descriptions; command probes are listed in app.services.probes.COMMAND_PROBES
PROBE_DESCRIPTIONS = {
    "get_python_version": "Checks whether Python is installed and if so, returns the version number.",
    "get_pip_version": "Checks whether pip (Python package installer) is installed and returns the version number.",
    "get_node_version": "Checks whether Node.js is installed and returns the version number.",
    "get_npm_version": "Checks whether npm (Node Package Manager) is installed and returns the version number.",
    "get_git_version": "Checks whether Git version control is installed and returns the version number.",
    "get_sqlite3_version": "Checks whether SQLite3 is installed and if so, returns the version number.",
    "get_freebasic_version": "Checks whether the FreeBASIC compiler is installed and returns the version number.",
    "get_dotnet_info": "Returns .NET SDK and runtime information including installed versions.",
    "get_pip_packages": "Lists all Python packages installed via pip with their version numbers.",
    "get_npm_global_packages": "Lists all globally installed npm packages with their version numbers.",
    "get_npm_project_packages": "Lists npm packages installed in the server's working directory.",
    "get_nvidia_smi": "Get NVIDIA GPU information using nvidia-smi. Only works with NVIDIA drivers installed.",
    "get_network_info": "Get network configuration (ipconfig on Windows, ip/ifconfig elsewhere).",
    "get_system_info": "Get CPU and RAM information: processor, core count, clock speed, memory usage, uptime.",
    "get_drive_info": "Provides data on the size of the disk space and the space used.",
    "get_local_time": "Get the current local system time with date and timezone information. "
                      "Example: [timestamp format='Day DD-MM-YYYY HH:MM' timezone='Europe/Helsinki' "
                      "value='Wednesday 15-10-2025 02:21'/]",
}


class ProbeIn(BaseModel):
    pass
