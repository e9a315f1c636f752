from conftest import FakeResponse, FakeSearchClient, FakeSuggester, search_page
from emotichat.emoticonService.imageSearch import EmoticonSearchClient
from emotichat.emoticonService.keywordDeriver import derive_variations
from emotichat.emoticonService.models import SearchResult
from emotichat.emoticonService.tagReplacer import TagReplacer, iter_placeholders

DOGE = SearchResult(url="https://img.test/doge.gif", alt="doge")
INLINE = SearchResult(url="data:image/gif;base64,R0lGODlh", alt="inline")


def test_iter_placeholders_accepts_mixed_brackets():
    text = "a(doge.jpg) b（熊猫头.PNG] c【滑稽.Gif） d[x.webp] e(notes.txt) f(y.jpeg"
    matches = list(iter_placeholders(text))

    assert [m.file_name_token for m in matches] == ["doge.jpg", "熊猫头.PNG", "滑稽.Gif", "x.webp"]
    assert all(text[m.start:m.end] == m.full_match for m in matches)


def test_iter_placeholders_is_lazy():
    matches = iter_placeholders("(a.jpg)(b.jpg)")
    assert next(matches).file_name_token == "a.jpg"
    assert next(matches).file_name_token == "b.jpg"


async def test_text_without_placeholders_is_untouched():
    search = FakeSearchClient()
    outcome = await TagReplacer(search).resolve("just words (and parens)")

    assert outcome.processed_text == "just words (and parens)"
    assert outcome.emoticons == []
    assert search.calls == []


async def test_unresolved_placeholder_stays_verbatim():
    search = FakeSearchClient()
    suggester = FakeSuggester(["never used"])
    text = "hello (不存在的表情.jpg) world"

    outcome = await TagReplacer(search, suggester).resolve(text)

    assert outcome.processed_text == text
    assert outcome.emoticons == []
    assert search.calls == derive_variations("不存在的表情.jpg")
    assert suggester.calls == []


async def test_later_variation_wins_and_search_stops():
    variations = derive_variations("老铁2.0版没毛病.jpg")
    winner = variations[3]
    hit = SearchResult(url="https://img.test/laotie.gif", alt="老铁")
    search = FakeSearchClient({winner: [hit], variations[5]: [DOGE]})

    outcome = await TagReplacer(search, proxy_path=None).resolve("(老铁2.0版没毛病.jpg)")

    assert outcome.emoticons == [hit]
    assert search.calls == variations[:4]
    assert outcome.processed_text == '<img src="https://img.test/laotie.gif" alt="老铁" class="emoticon" />'


async def test_fallback_chain_searches_alternatives():
    search = FakeSearchClient({"熊猫头": [DOGE]})
    suggester = FakeSuggester(["蘑菇头", "熊猫头"])
    replacer = TagReplacer(search, suggester, max_fallback_attempts=3)

    outcome = await replacer.resolve("(无语.jpg)", credential="sk-user")

    assert outcome.emoticons == [DOGE]
    assert suggester.calls == [("无语", "sk-user"), ("蘑菇头", "sk-user")]
    assert search.calls[-2:] == ["蘑菇头", "熊猫头"]


async def test_fallback_chain_is_bounded():
    search = FakeSearchClient()
    suggester = FakeSuggester([f"alt{i}" for i in range(10)])
    replacer = TagReplacer(search, suggester, max_fallback_attempts=3)

    outcome = await replacer.resolve("(无语.jpg)", credential="sk-user")

    assert outcome.processed_text == "(无语.jpg)"
    assert len(suggester.calls) == 3
    assert search.calls[-3:] == ["alt0", "alt1", "alt2"]


async def test_fallback_stops_when_no_alternative():
    search = FakeSearchClient()
    suggester = FakeSuggester([None])

    outcome = await TagReplacer(search, suggester).resolve("(无语.jpg)", credential="sk-user")

    assert outcome.emoticons == []
    assert len(suggester.calls) == 1


async def test_failure_in_one_placeholder_does_not_abort_others():
    search = FakeSearchClient({"doge": [DOGE]}, failing={"坏掉"})
    text = "(坏掉.jpg) then (doge.png)"

    outcome = await TagReplacer(search, proxy_path=None).resolve(text)

    assert outcome.processed_text.startswith("(坏掉.jpg) then <img ")
    assert outcome.emoticons == [DOGE]


async def test_repeated_token_is_searched_once():
    search = FakeSearchClient({"doge": [DOGE]})

    outcome = await TagReplacer(search).resolve("(doge.png) and again (doge.png)")

    assert search.calls == ["doge"]
    assert outcome.emoticons == [DOGE, DOGE]
    assert outcome.processed_text.count("<img ") == 2


async def test_render_routes_remote_urls_through_proxy_and_escapes_label():
    replacer = TagReplacer(FakeSearchClient(), proxy_path="/api/proxy-image")

    remote = replacer.render(SearchResult(url="https://img.test/a b.gif?x=1&y=2", alt='<b>"hi"</b>'))
    inline = replacer.render(INLINE)

    assert remote == (
        '<img src="/api/proxy-image?url=https%3A%2F%2Fimg.test%2Fa%20b.gif%3Fx%3D1%26y%3D2" '
        'alt="&lt;b&gt;&quot;hi&quot;&lt;/b&gt;" class="emoticon" />'
    )
    assert inline == '<img src="data:image/gif;base64,R0lGODlh" alt="inline" class="emoticon" />'


async def test_placeholder_with_only_noise_is_skipped():
    search = FakeSearchClient()
    outcome = await TagReplacer(search).resolve("(???.jpg)")

    assert outcome.processed_text == "(???.jpg)"
    assert search.calls == []


async def test_broken_page_for_one_variation_moves_on_to_next(fake_session):
    variations = derive_variations("老铁没毛病.jpg")
    client = EmoticonSearchClient(fake_session, retry_backoff=0, download_delay=0)
    broken = "<html><body>没有找到相关表情</body></html>".encode("gbk")
    fake_session.add("GET", client.build_search_url(variations[0]), FakeResponse(body=broken))
    fake_session.add("GET", client.build_search_url(variations[1]), FakeResponse(body=search_page(
        '<img data-original="https://img.test/laotie.gif" title="老铁">',
    )))
    fake_session.add("GET", "https://img.test/laotie.gif", FakeResponse(status=404))

    outcome = await TagReplacer(client, proxy_path=None).resolve("(老铁没毛病.jpg)")

    assert outcome.emoticons == [SearchResult(url="https://img.test/laotie.gif", alt="老铁")]
    page_urls = [c["url"] for c in fake_session.calls if "img.test" not in c["url"]]
    assert page_urls == [client.build_search_url(v) for v in variations[:2]]


async def test_replacer_asks_search_for_a_single_result():
    search = FakeSearchClient({"doge": [DOGE]})
    await TagReplacer(search).resolve("(doge.png)")
    assert search.limits == [1]
