import pytest

from hlsdl import DownloadTarget, M3U8Downloader, RetryPolicy
from hlsdl.errors import (
    FetchError,
    IncompleteDownloadError,
    InvalidPlaylistError,
    KeyDownloadError,
    UnsupportedPlaylistError,
)

PLAYLIST = '#EXTM3U\n#EXT-X-KEY:METHOD=AES-128,URI="k.bin"\nseg0.ts\nseg1.ts\n'

MASTER = (
    "#EXTM3U\n"
    "#EXT-X-STREAM-INF:BANDWIDTH=1280000,RESOLUTION=1280x720\n"
    "720p/index.m3u8\n"
)


@pytest.fixture
def served(origin):
    origin.add("/path/index.m3u8", PLAYLIST)
    origin.add("/path/k.bin", b"0123456789abcdef")
    origin.add("/path/seg0.ts", b"segment zero")
    origin.add("/path/seg1.ts", b"segment one")
    return origin


async def download(origin, output, policy):
    target = DownloadTarget(url=origin.url("/path/index.m3u8"), output=output, workers=2)
    async with M3U8Downloader(target, policy) as downloader:
        return await downloader.start()


async def test_full_run_mirrors_playlist(served, tmp_path, fast_policy):
    output = tmp_path / "D"

    missing = await download(served, output, fast_policy)

    assert missing == []
    assert (output / "index.m3u8").read_text() == (
        '#EXTM3U\n#EXT-X-KEY:METHOD=AES-128,URI="key.m3u8"\nseg0.ts\nseg1.ts\n'
    )
    assert (output / "key.m3u8").read_bytes() == b"0123456789abcdef"
    assert (output / "seg0.ts").read_bytes() == b"segment zero"
    assert (output / "seg1.ts").read_bytes() == b"segment one"
    assert sorted(p.name for p in output.iterdir()) == [
        "index.m3u8", "key.m3u8", "seg0.ts", "seg1.ts"
    ]


async def test_second_run_makes_no_requests(served, tmp_path, fast_policy):
    await download(served, tmp_path, fast_policy)
    hits = served.total_hits

    await download(served, tmp_path, fast_policy)

    assert served.total_hits == hits == 4


async def test_resume_fetches_only_missing_segments(served, tmp_path, fast_policy):
    served.failures["/path/seg1.ts"] = 10

    missing = await download(served, tmp_path, fast_policy)

    assert missing == ["seg1.ts"]
    index = (tmp_path / "index.m3u8").read_text()
    assert "seg1.ts" in index

    served.failures.clear()
    missing = await download(served, tmp_path, fast_policy)

    assert missing == []
    assert served.hits["/path/seg0.ts"] == 1
    assert served.hits["/path/index.m3u8"] == 1
    assert (tmp_path / "seg1.ts").read_bytes() == b"segment one"


async def test_remote_segment_left_in_playlist_when_missing(origin, tmp_path, fast_policy):
    absolute = origin.url("/other/b.ts")
    origin.add("/path/index.m3u8", f"#EXTM3U\n#EXTINF:4,\n{absolute}\n")

    missing = await download(origin, tmp_path, fast_policy)

    assert missing == [absolute]
    assert (tmp_path / "index.m3u8").read_text() == f"#EXTM3U\n#EXTINF:4,\n{absolute}\n"


async def test_strict_policy_fails_on_missing_segments(served, tmp_path, fast_policy):
    served.failures["/path/seg0.ts"] = 10
    policy = RetryPolicy(max_retries=1, backoff=0, backoff_max=0, fail_on_missing=True)

    with pytest.raises(IncompleteDownloadError) as excinfo:
        await download(served, tmp_path, policy)

    assert excinfo.value.missing == ["seg0.ts"]


async def test_invalid_signature_is_rejected(origin, tmp_path, fast_policy):
    origin.add("/path/index.m3u8", "<html>not found</html>")

    with pytest.raises(InvalidPlaylistError):
        await download(origin, tmp_path, fast_policy)

    assert not (tmp_path / "index.m3u8").exists()


async def test_master_playlist_is_rejected(origin, tmp_path, fast_policy):
    origin.add("/path/index.m3u8", MASTER)

    with pytest.raises(UnsupportedPlaylistError):
        await download(origin, tmp_path, fast_policy)


async def test_playlist_http_error_is_fatal(origin, tmp_path, fast_policy):
    with pytest.raises(FetchError):
        await download(origin, tmp_path, fast_policy)


async def test_key_failure_is_fatal_and_not_retried(served, tmp_path, fast_policy):
    del served.files["/path/k.bin"]

    with pytest.raises(KeyDownloadError):
        await download(served, tmp_path, fast_policy)

    assert served.hits["/path/k.bin"] == 1
    assert served.hits["/path/seg0.ts"] == 0


async def test_cached_playlist_is_used_without_request(served, tmp_path, fast_policy):
    (tmp_path / "index.m3u8").write_text("#EXTM3U\nseg0.ts\n")

    await download(served, tmp_path, fast_policy)

    assert served.hits["/path/index.m3u8"] == 0
    assert served.hits["/path/k.bin"] == 0
    assert (tmp_path / "seg0.ts").exists()
    assert not (tmp_path / "seg1.ts").exists()


async def test_non_utf8_playlist_bytes_survive_rewrite(origin, tmp_path, fast_policy):
    origin.add("/path/index.m3u8", b"#EXTM3U\n#EXTINF:4,caf\xe9\nhttp://h/x/seg0.ts\n")
    origin.add("/path/seg0.ts", b"zero")
    (tmp_path / "seg0.ts").write_bytes(b"zero")

    missing = await download(origin, tmp_path, fast_policy)

    assert missing == []
    assert (tmp_path / "index.m3u8").read_bytes() == b"#EXTM3U\n#EXTINF:4,caf\xe9\nseg0.ts\n"
