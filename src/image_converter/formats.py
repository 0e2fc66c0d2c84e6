"""Output format table and per-format encode parameters."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from image_converter.config import ConverterSettings
from image_converter.errors import UnsupportedFormatError
from image_converter.types import RGBColor


@dataclass(frozen=True)
class FormatSpec:
    """Static description of one output format.

    Parameters
    ----------
    name : str
        Canonical format name.
    extension : str
        File extension used for output names (without dot).
    mime_type : str
        MIME type used in data URIs.
    pil_format : str
        Pillow format identifier passed to ``Image.save``.
    aliases : frozenset[str], default=frozenset()
        Alternative names that normalize to ``name``.
    supports_alpha : bool, default=True
        Whether the format can store an alpha channel.
    lossy : bool, default=False
        Whether ``quality`` applies to this format.
    writable_modes : frozenset[str], default=frozenset()
        Pillow image modes the encoder accepts without conversion.
    """

    name: str
    extension: str
    mime_type: str
    pil_format: str
    aliases: frozenset[str] = field(default_factory=frozenset)
    supports_alpha: bool = True
    lossy: bool = False
    writable_modes: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class EncodeParameters:
    """Resolved encode options for one batch."""

    format: FormatSpec
    quality: int | None = None
    compression_level: int | None = None
    flatten_alpha: bool = False
    background: RGBColor = (255, 255, 255)
    dither: bool = False


BUILTIN_FORMATS: tuple[FormatSpec, ...] = (
    FormatSpec(
        name="webp",
        extension="webp",
        mime_type="image/webp",
        pil_format="WEBP",
        lossy=True,
        writable_modes=frozenset({"RGB", "RGBA"}),
    ),
    FormatSpec(
        name="jpeg",
        extension="jpg",
        mime_type="image/jpeg",
        pil_format="JPEG",
        aliases=frozenset({"jpg"}),
        supports_alpha=False,
        lossy=True,
        writable_modes=frozenset({"RGB", "L", "CMYK"}),
    ),
    FormatSpec(
        name="png",
        extension="png",
        mime_type="image/png",
        pil_format="PNG",
        writable_modes=frozenset({"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}),
    ),
    FormatSpec(
        name="avif",
        extension="avif",
        mime_type="image/avif",
        pil_format="AVIF",
        lossy=True,
        writable_modes=frozenset({"RGB", "RGBA"}),
    ),
    FormatSpec(
        name="gif",
        extension="gif",
        mime_type="image/gif",
        pil_format="GIF",
        writable_modes=frozenset({"1", "L", "P", "RGB", "RGBA"}),
    ),
)


class FormatPolicy:
    """Lookup table from format names to format specs and encode parameters."""

    def __init__(
        self,
        formats: Iterable[FormatSpec] = BUILTIN_FORMATS,
        *,
        enabled: Iterable[str] | None = None,
        quality: Mapping[str, int] | None = None,
        png_compression_level: int = 6,
        gif_dither: bool = False,
        background: RGBColor = (255, 255, 255),
    ) -> None:
        self._formats: dict[str, FormatSpec] = {}
        self._aliases: dict[str, str] = {}
        for spec in formats:
            self.register(spec)
        self._enabled = (
            {self.normalize(name) for name in enabled}
            if enabled is not None
            else set(self._formats)
        )
        self._quality = dict(quality or {})
        self._png_compression_level = png_compression_level
        self._gif_dither = gif_dither
        self._background = background

    @classmethod
    def from_settings(cls, settings: ConverterSettings) -> FormatPolicy:
        """Build a policy from runtime settings."""
        return cls(
            enabled=settings.supported_formats,
            quality={
                "webp": settings.webp_quality,
                "jpeg": settings.jpeg_quality,
                "avif": settings.avif_quality,
            },
            png_compression_level=settings.png_compression_level,
            gif_dither=settings.gif_dither,
            background=settings.flatten_background,
        )

    def register(self, spec: FormatSpec, *, enable: bool = False) -> None:
        """Register a format spec and its aliases.

        Parameters
        ----------
        spec : FormatSpec
            Format to register. Re-registering a name replaces it.
        enable : bool, default=False
            Also add the format to the enabled set.
        """
        name = spec.name.strip().lower()
        if not name:
            raise ValueError("Format spec must define a non-empty 'name'.")
        self._formats[name] = spec
        self._aliases[name] = name
        for alias in spec.aliases:
            self._aliases[alias.strip().lower()] = name
        if enable:
            self._enabled.add(name)

    def names(self) -> list[str]:
        """Return enabled canonical format names in registration order."""
        return [name for name in self._formats if name in self._enabled]

    def accepted_names(self) -> list[str]:
        """Return every name (canonical or alias) a caller may request."""
        return sorted(
            alias for alias, name in self._aliases.items() if name in self._enabled
        )

    def normalize(self, name: str) -> str:
        """Lower-case a format name and resolve aliases.

        Unknown names are returned lower-cased so callers can report them.
        """
        cleaned = name.strip().lower()
        return self._aliases.get(cleaned, cleaned)

    def resolve(self, name: str) -> FormatSpec:
        """Return the enabled spec for ``name``.

        Raises
        ------
        UnsupportedFormatError
            If the name is unknown or the format is disabled.
        """
        canonical = self.normalize(name)
        if canonical not in self._enabled or canonical not in self._formats:
            raise UnsupportedFormatError(name.strip(), self.accepted_names())
        return self._formats[canonical]

    def parameters_for(self, name: str) -> EncodeParameters:
        """Return encode parameters for an enabled format."""
        spec = self.resolve(name)
        return EncodeParameters(
            format=spec,
            quality=self._quality.get(spec.name) if spec.lossy else None,
            compression_level=(
                self._png_compression_level if spec.name == "png" else None
            ),
            flatten_alpha=not spec.supports_alpha,
            background=self._background,
            dither=self._gif_dither if spec.name == "gif" else False,
        )
