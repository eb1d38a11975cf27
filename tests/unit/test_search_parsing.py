from autoapply.browser.parsing import html_to_text, parse_next_page_url, parse_salary, parse_search_results

PAGE = """
<ul>
  <li data-id-storage-item-id="111">
    <a href="/fr-fr/emplois/111.html"><h3><p>Développeur React</p><p>TechCorp</p></h3></a>
    <div data-cy="localisationCard">Paris 75</div>
    <div data-cy="contractCard">CDI</div>
    <div class="tw-typo-s-bold">45 - 55 k€</div>
    <span>Télétravail partiel</span>
    <time datetime="2024-05-18T09:00:00+00:00">il y a 2 jours</time>
  </li>
  <li data-id-storage-item-id="222">
    <a href="https://www.hellowork.com/fr-fr/emplois/222.html"><h3><p>Data Engineer</p></h3></a>
    <img alt="DataCo" src="logo.png">
    <div data-cy="contractCard">CDD</div>
  </li>
  <li data-id-storage-item-id="333"><h3><p>No link here</p></h3></li>
</ul>
<nav><a rel="next" href="?k=react&p=2">Suivante</a></nav>
"""


def test_cards_are_parsed_and_incomplete_ones_skipped() -> None:
    jobs = parse_search_results(PAGE)

    assert [job.external_id for job in jobs] == ["111", "222"]
    first, second = jobs
    assert first.title == "Développeur React"
    assert first.company == "TechCorp"
    assert first.location == "Paris 75"
    assert first.url == "https://www.hellowork.com/fr-fr/emplois/111.html"
    assert first.salary_min == 45000
    assert first.salary_max == 55000
    assert first.description == "CDI - 45 - 55 k€"
    assert first.remote is True
    assert first.posted_at is not None
    assert second.company == "DataCo"
    assert second.contract_type == "CDD"
    assert second.remote is False


def test_salary_formats() -> None:
    assert parse_salary("35 000 € - 40 000 € / an") == (35000, 40000)
    assert parse_salary("50k€") == (50000, 50000)
    assert parse_salary("Selon profil") == (None, None)


def test_next_page_url_is_resolved_against_current_url() -> None:
    url = parse_next_page_url(PAGE, "https://www.hellowork.com/fr-fr/emploi/recherche.html?k=react")

    assert url == "https://www.hellowork.com/fr-fr/emploi/recherche.html?k=react&p=2"


def test_disabled_or_missing_next_page_returns_none() -> None:
    disabled = '<a rel="next" aria-disabled="true" href="?p=3">Suivante</a>'

    assert parse_next_page_url(disabled, "https://www.hellowork.com/") is None
    assert parse_next_page_url("<p>fin</p>", "https://www.hellowork.com/") is None


def test_html_to_text_drops_scripts() -> None:
    text = html_to_text("<div><script>var x = 1;</script><p>Postuler</p>\n<p> sur le site </p></div>")

    assert text == "Postuler\nsur le site"
