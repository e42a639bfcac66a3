from powerhour.core.models import PowerHourModel


class TempSong(PowerHourModel):
    """A song file held in the temp-songs folder (e.g. a download awaiting clipping)."""

    id: str
    name: str
    extension: str = ".mp3"
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    source: str | None = None
    file_path: str | None = None
