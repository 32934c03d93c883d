"""
MCP server exposing KernelSU setup, cleanup and ref listing as tools.
"""
import logging
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.types import Tool, TextContent

from .config_manager import ConfigManager
from .git_manager import GitCommandError
from .paths import DriversDirNotFoundError
from .setup_manager import SetupManager

# Configure logging - log to both file and stderr
# File logging allows tailing progress: tail -f /tmp/ksu-setup-mcp.log
log_file = Path("/tmp/ksu-setup-mcp.log")
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_file, mode='a'),  # Append mode
        logging.StreamHandler()  # stderr - may show in MCP client
    ]
)
logger = logging.getLogger(__name__)

# Initialize server
app = Server("ksu-setup-mcp")

config_manager = ConfigManager()

KERNEL_ROOT_PROPERTY = {
    "type": "string",
    "description": "Path to kernel source root (containing drivers/ or common/drivers/)"
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools."""
    return [
        Tool(
            name="ksu_setup",
            description="Set up or update KernelSU in a kernel tree at a commit, tag or branch "
                        "(latest tag if no target is given)",
            inputSchema={
                "type": "object",
                "properties": {
                    "kernel_root": KERNEL_ROOT_PROPERTY,
                    "target": {
                        "type": "string",
                        "description": "Commit hash, tag or branch to check out"
                    }
                },
                "required": ["kernel_root"]
            }
        ),
        Tool(
            name="ksu_cleanup",
            description="Remove the KernelSU symlink, Makefile/Kconfig entries and clone",
            inputSchema={
                "type": "object",
                "properties": {"kernel_root": KERNEL_ROOT_PROPERTY},
                "required": ["kernel_root"]
            }
        ),
        Tool(
            name="ksu_list_refs",
            description="List remote branches, recent tags and recent commits of the KernelSU clone",
            inputSchema={
                "type": "object",
                "properties": {"kernel_root": KERNEL_ROOT_PROPERTY},
                "required": ["kernel_root"]
            }
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    try:
        kernel_root = Path(arguments["kernel_root"])

        try:
            manager = SetupManager(kernel_root, config_manager.load())
        except DriversDirNotFoundError as e:
            return [TextContent(type="text", text=f"Error: {e}")]

        if name == "ksu_setup":
            try:
                result = manager.setup(arguments.get("target"))
            except GitCommandError as e:
                return [TextContent(type="text", text=f"Error: {e}")]
            return [TextContent(type="text", text=result.summary())]

        elif name == "ksu_cleanup":
            result = manager.cleanup()
            steps = [
                ("Symlink removed", result.symlink_removed),
                ("Makefile reverted", result.makefile_reverted),
                ("Kconfig reverted", result.kconfig_reverted),
                ("Clone deleted", result.clone_removed),
            ]
            output = "Cleanup complete\n"
            for label, done in steps:
                output += f"  {'✓' if done else '-'} {label}\n"
            return [TextContent(type="text", text=output)]

        elif name == "ksu_list_refs":
            listing = manager.list_refs()
            if listing is None:
                return [TextContent(type="text", text="Error: KernelSU directory not found")]
            return [TextContent(type="text", text=listing.format())]

        else:
            raise ValueError(f"Unknown tool: {name}")

    except Exception as e:
        logger.error(f"Error in tool {name}: {e}", exc_info=True)
        return [TextContent(type="text", text=f"Error: {str(e)}")]


def main():
    """Main entry point for the MCP server."""
    import asyncio
    import mcp.server.stdio

    async def run():
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options()
            )

    asyncio.run(run())


if __name__ == "__main__":
    main()
