import json
import os
import tempfile
from pathlib import Path

from src.config.logger_config import logger

from src.pets.domain.errors import ArtifactWriteError
from src.pets.domain.models import PetsArtifact


def _default_file_mode() -> int:
    # os.umask can only be read by setting it
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class PetsArtifactSink:
    def __init__(self, output_path: str | Path) -> None:
        self.output_path = Path(output_path)

    def write(self, artifact: PetsArtifact) -> Path:
        """Serialize `artifact` and replace the output file in one rename."""
        parent = self.output_path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactWriteError(f"Could not create output directory {parent}: {exc}") from exc

        tmp_name = None
        try:
            payload = json.dumps(artifact.to_dict(), ensure_ascii=False, indent=2) + "\n"
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=parent,
                prefix=f".{self.output_path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fp:
                tmp_name = fp.name
                fp.write(payload)
            # NamedTemporaryFile creates 0600 files
            os.chmod(tmp_name, _default_file_mode())
            os.replace(tmp_name, self.output_path)
        except BaseException as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            if isinstance(exc, (OSError, ValueError)):
                raise ArtifactWriteError(f"Could not write {self.output_path}: {exc}") from exc
            raise

        logger.info("Pets artifact written: output_path={}, pets={}", str(self.output_path), len(artifact.pets))
        return self.output_path
