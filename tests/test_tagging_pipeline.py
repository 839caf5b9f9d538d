"""End-to-end tests for stage 1 with a fake annotator."""
from dimcorpus.config import load_config
from dimcorpus.ingest import load_corpus, merge_corpora
from dimcorpus.normalize import normalize_essays
from dimcorpus.tagging import run_tagging


def test_two_essay_scenario(two_essay_project, fake_annotator, splitter):
    """One learner and one native essay yield exactly gatito and perrito."""
    corpus = load_corpus(load_config(two_essay_project))
    result = run_tagging(corpus, fake_annotator, splitter, show_progress=False)

    candidates = result.candidates.sort_values('token').reset_index(drop=True)
    assert candidates['token'].tolist() == ['gatito', 'perrito']
    assert candidates['variant'].tolist() == ['ito', 'ito']
    assert candidates['filename'].tolist() == ['EN_WR_01', 'ES_WR_01']
    assert candidates['l1'].tolist() == ['English', 'Spanish']
    assert candidates['subcorpus'].tolist() == ['learner', 'native']


def test_tokens_cover_every_word(two_essay_project, fake_annotator, splitter):
    corpus = load_corpus(load_config(two_essay_project))
    result = run_tagging(corpus, fake_annotator, splitter, show_progress=False)

    # 5 words + period, 4 words + period
    assert len(result.tokens) == 11
    assert result.tokens['sentence_id'].nunique() == 2
    assert 'text' not in result.tokens.columns


def test_essays_without_candidates_are_not_annotated(
        learner_essays, native_essays, expected_difference, fake_annotator, splitter):
    corpus = normalize_essays(merge_corpora(learner_essays, native_essays, expected_difference))
    result = run_tagging(corpus, fake_annotator, splitter, show_progress=False)

    annotated = {s for call in fake_annotator.calls for s in call}
    assert 'Mi abuela vivía en el campo.' not in annotated
    assert 'Llegamos a Oaxaca de noche.' not in annotated

    assert result.stats['essays_total'] == 5
    assert result.stats['essays_with_candidates'] == 3
    assert sorted(result.candidates['token']) == ['bonito', 'casita', 'gatito', 'perrito']
    assert result.stats['candidates_by_variant'] == {'ito': 4}


def test_tagging_main_writes_outputs(two_essay_project, fake_annotator, monkeypatch):
    import dimcorpus.tagging as tagging

    monkeypatch.setattr(tagging, 'StanzaAnnotator', lambda **kwargs: fake_annotator)
    status = tagging.main(['--config', str(two_essay_project), '--no-progress'])

    assert status == 0
    intermediate = two_essay_project.parent.parent / 'data' / 'intermediate'
    assert (intermediate / 'tokens.csv').exists()
    assert (intermediate / 'candidates.csv').exists()
    assert (intermediate / 'tagging_stats.json').exists()
