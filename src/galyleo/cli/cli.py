# SPDX-FileCopyrightText: NVIDIA CORPORATION & AFFILIATES
# Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import logging.config
from pathlib import Path
from typing import Optional

import click
from rich.logging import RichHandler

from ..launch_request import JupyterInterface
from .handlers import handle_clean, handle_configure, handle_launch


def setup_logging(log_file: Optional[str], log_level: str) -> None:
    """
    Configure logging for the application.

    Args:
        log_file (str, optional): The name of the debug log file. Nothing is written to disk when not set.
        log_level (str): The logging level (e.g., DEBUG, INFO).
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    handlers = {
        "rich": {
            "class": "rich.logging.RichHandler",
            "level": log_level.upper(),
            "formatter": "rich",
            "rich_tracebacks": True,
            "show_path": False,
            "show_time": False,
        },
    }
    if log_file:
        handlers["debug_file"] = {
            "level": "DEBUG",
            "formatter": "standard",
            "class": "logging.FileHandler",
            "filename": log_file,
            "mode": "a",
        }

    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": True,
        "formatters": {
            "standard": {"format": "%(asctime)s - %(levelname)s - %(message)s"},
            "rich": {"format": "%(message)s", "datefmt": "[%X]"},
        },
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers),
                "level": "DEBUG",
                "propagate": False,
            },
            "urllib3": {
                "level": "WARNING",
            },
        },
    }
    logging.config.dictConfig(LOGGING_CONFIG)


def quiet_console() -> None:
    for handler in logging.getLogger().handlers:
        if isinstance(handler, RichHandler):
            handler.setLevel(logging.WARNING)


@click.group(name="galyleo", context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "config_path",
    envvar="GALYLEO_CONFIG",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="galyleo configuration file.",
)
@click.option("--log-file", default=None, help="Log file path for storing verbose output.")
@click.option("--log-level", default="INFO", help="Log level for standard output.")
@click.version_option(package_name="galyleo", prog_name="galyleo")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], log_file: Optional[str], log_level: str):
    """galyleo launches Jupyter notebook servers on a Slurm cluster behind a secure reverse proxy."""
    setup_logging(log_file, log_level)
    ctx.obj = {"config_path": config_path}


@main.command()
@click.option("--mode", type=click.Choice(["local"]), default="local", show_default=True, help="Launch mode.")
@click.option("-A", "--account", help="Account to charge the job to.")
@click.option("-R", "--reservation", help="Slurm reservation.")
@click.option("-p", "--partition", help="Slurm partition (default from configuration).")
@click.option("-q", "--qos", help="Quality of service.")
@click.option("-N", "--nodes", type=int, help="Number of nodes.")
@click.option("-n", "--ntasks-per-node", type=int, help="Tasks per node.")
@click.option("-c", "--cpus-per-task", type=int, help="CPUs per task.")
@click.option("-M", "--memory-per-node", type=int, help="Memory per node in GB, overrides --memory-per-cpu.")
@click.option("-m", "--memory-per-cpu", type=int, help="Memory per CPU in GB.")
@click.option("-G", "--gpus", help="GPUs to request.")
@click.option("--gres", help="Generic resources to request.")
@click.option("-t", "--time-limit", help="Job time limit.")
@click.option("-C", "--constraint", help="Node feature constraint.")
@click.option("-j", "--jupyter", "jupyter_interface", help="Jupyter user interface: lab or notebook.")
@click.option("-d", "--notebook-dir", type=click.Path(path_type=Path), help="Notebook directory (default: $HOME).")
@click.option("-s", "--sif", type=click.Path(path_type=Path), help="Singularity image file.")
@click.option("-B", "--bind", help="Singularity bind mounts.")
@click.option("--nv", "gpu_type", flag_value="nv", help="Enable NVIDIA GPU support in the container.")
@click.option("--rocm", "gpu_type", flag_value="rocm", help="Enable AMD GPU support in the container.")
@click.option("-e", "--env-modules", help="Comma-separated list of environment modules to load.")
@click.option("--conda-env", help="Conda environment to activate.")
@click.option("-Q", "--quiet", is_flag=True, default=False, help="Only print warnings, errors and the URL.")
@click.pass_context
def launch(ctx: click.Context, mode: str, quiet: bool, **options):
    """Launch a Jupyter server as a Slurm job and print its HTTPS URL."""
    if quiet:
        quiet_console()
    exit(handle_launch(ctx.obj["config_path"], options))


@main.command()
@click.option("-r", "--reverse-proxy", "reverse_proxy_fqdn", help="FQDN of the reverse proxy service.")
@click.option("-D", "--dns-domain", help="DNS domain of the compute nodes.")
@click.option("-p", "--partition", "default_partition", help="Default Slurm partition.")
@click.option(
    "-j",
    "--jupyter",
    "default_jupyter_interface",
    type=click.Choice([i.value for i in JupyterInterface]),
    help="Default Jupyter user interface.",
)
@click.option("--cache-dir", type=click.Path(file_okay=False, path_type=Path), help="Cache directory.")
@click.pass_context
def configure(ctx: click.Context, **settings):
    """Create the galyleo configuration file. An existing file is never overwritten."""
    exit(handle_configure(ctx.obj["config_path"], settings))


@main.command()
@click.option("--older-than", default=None, help="Only remove entries older than this, e.g. 7d or 12h.")
@click.pass_context
def clean(ctx: click.Context, older_than: Optional[str]):
    """Remove generated launch scripts and job output from the cache directory."""
    exit(handle_clean(ctx.obj["config_path"], older_than))
