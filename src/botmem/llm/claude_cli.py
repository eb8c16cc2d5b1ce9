"""Claude CLI backend - runs `claude -p` as a subprocess."""

import asyncio

from botmem.core.errors import BackendError
from botmem.core.logging import get_logger
from botmem.llm.base import BackendType, preview

logger = get_logger("llm.claude_cli")


class ClaudeCliBackend:
    """Uses the locally installed claude CLI (no API key needed)."""

    name = BackendType.CLAUDE_CLI.value

    def __init__(self, command: str = "claude"):
        self.command = command

    def build_args(self, system_prompt: str, text: str) -> list[str]:
        # The CLI has no separate system channel; instructions lead the prompt
        prompt = f"{system_prompt}\n\nConversation text to extract from:\n\n{text}"
        return [self.command, "-p", "--output-format", "text", prompt]

    async def invoke(self, system_prompt: str, text: str) -> str:
        args = self.build_args(system_prompt, text)
        logger.debug(f"Claude CLI request ({len(text)} chars of input)")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except FileNotFoundError as e:
            logger.error(f"Claude CLI not found: {self.command}")
            raise BackendError(self.name, f"{self.command!r} not found on PATH") from e
        except OSError as e:
            logger.error(f"Claude CLI failed to start: {e}")
            raise BackendError(self.name, f"failed to start {self.command!r}: {e}") from e

        if process.returncode != 0:
            err = stderr.decode(errors="replace").strip()
            logger.error(f"Claude CLI exited {process.returncode}: {err}")
            raise BackendError(
                self.name,
                f"{self.command} -p failed",
                status=process.returncode,
                body=err,
            )

        output = stdout.decode(errors="replace").strip()
        if not output:
            raise BackendError(self.name, f"empty response from {self.command} -p")

        logger.debug(f"Claude CLI response: {preview(output)}")
        return output

    async def close(self) -> None:
        """Nothing to release; each call owns its subprocess."""
