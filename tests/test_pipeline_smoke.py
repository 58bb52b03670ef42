"""
Integration tests for movie_recommender.pipeline

Covers:
- End-to-end run_pipeline() on CSV files in a temp Data directory
- Deterministic behavior across runs
- Failure paths leave no artifact
- main() command-line entry point
"""

import math

import pandas as pd
import pytest

from movie_recommender import config, pipeline, serialize
from movie_recommender.context import PipelineContext
from movie_recommender.predict import MovieRating

FAST_MF_CONFIG = {"rank": 8, "iterations": 5}


def write_split(data_dir, train_rows, test_rows):
    """Write train/test CSV files from (userId, movieId, Label) tuples."""
    columns = ['userId', 'movieId', 'Label']
    pd.DataFrame(train_rows, columns=columns).to_csv(data_dir / config.TRAIN_FILE_NAME, index=False)
    pd.DataFrame(test_rows, columns=columns).to_csv(data_dir / config.TEST_FILE_NAME, index=False)


# -------------------------------------------------------------------
# Full pipeline
# -------------------------------------------------------------------

class TestRunPipeline:
    """End-to-end orchestration tests for run_pipeline()"""

    def test_full_pipeline_run(self, data_dir, capsys):
        """Pipeline runs all stages and returns a structured dict."""
        result = pipeline.run_pipeline(data_dir=data_dir, mf_config=FAST_MF_CONFIG)

        model_path = data_dir / config.MODEL_FILE_NAME
        assert result['model_path'] == str(model_path)
        assert model_path.exists()
        assert result['model_size_mb'] > 0
        assert math.isfinite(result['evaluation_metrics']['root_mean_squared_error'])
        assert result['model_info']['rank'] == 8

        out = capsys.readouterr().out
        for banner in ("Training the model", "Evaluating the model",
                       "Making a prediction", "Saving the model to a file"):
            assert banner in out

    def test_stage_order(self, data_dir, mocker):
        """Stages run once each, in order load -> train -> evaluate -> predict -> save."""
        calls = []
        for name in ("load_data", "build_train_model", "evaluate_model",
                     "use_model_for_single_prediction", "save_model"):
            original = getattr(pipeline, name)
            mocker.patch.object(pipeline, name,
                                side_effect=lambda *a, _n=name, _f=original, **kw: calls.append(_n) or _f(*a, **kw))

        pipeline.run_pipeline(data_dir=data_dir, mf_config=FAST_MF_CONFIG)
        assert calls == ["load_data", "build_train_model", "evaluate_model",
                         "use_model_for_single_prediction", "save_model"]

    def test_training_time_excludes_loading(self, data_dir, mocker):
        """Time spent reading the CSV files is not reported as training time."""
        clock = [0.0]
        fake_time = mocker.patch("movie_recommender.pipeline.time")
        fake_time.time.side_effect = lambda: clock[0]

        original_load = pipeline.load_data

        def slow_load(*args, **kwargs):
            clock[0] += 100.0
            return original_load(*args, **kwargs)

        mocker.patch.object(pipeline, "load_data", side_effect=slow_load)

        result = pipeline.run_pipeline(data_dir=data_dir, mf_config=FAST_MF_CONFIG)
        assert result['training_time_sec'] == 0.0

    def test_reloaded_model_matches(self, data_dir):
        """The saved artifact scores the demo row exactly like the in-memory model."""
        result = pipeline.run_pipeline(data_dir=data_dir, mf_config=FAST_MF_CONFIG,
                                       demo_rating=MovieRating(userId=1, movieId=10))

        loaded, schema = serialize.load_model(result['model_path'])
        assert loaded.predict(1, 10) == result['prediction_score']
        assert schema.names == ('userId', 'movieId', 'Label')

    def test_deterministic_metrics(self, data_dir, tmp_path):
        """Same files and seed give the same metrics."""
        first = pipeline.run_pipeline(data_dir=data_dir, model_path=tmp_path / "a.zip",
                                      context=PipelineContext(seed=11), mf_config=FAST_MF_CONFIG)
        second = pipeline.run_pipeline(data_dir=data_dir, model_path=tmp_path / "b.zip",
                                       context=PipelineContext(seed=11), mf_config=FAST_MF_CONFIG)

        assert first['evaluation_metrics']['root_mean_squared_error'] == pytest.approx(
            second['evaluation_metrics']['root_mean_squared_error'], abs=1e-9)

    def test_recommends_repeated_high_rating(self, tmp_path, capsys):
        """User 6 rating movie 10 at 4.0 many times gets movie 10 recommended."""
        data_dir = tmp_path / "Data"
        data_dir.mkdir()
        train_rows = [(6, 10, 4.0)] * 30 + [(1, 20, 2.0), (2, 30, 3.0), (3, 20, 4.0)]
        test_rows = [(6, 10, 4.0), (1, 30, 3.0)]
        write_split(data_dir, train_rows, test_rows)

        result = pipeline.run_pipeline(data_dir=data_dir)

        assert round(result['prediction_score'], 1) > 3.5
        assert "Movie 10 is recommended for user 6" in capsys.readouterr().out

    def test_unseen_test_user(self, tmp_path):
        """Test rows with an unknown userId still evaluate to a finite RMSE."""
        data_dir = tmp_path / "Data"
        data_dir.mkdir()
        write_split(data_dir,
                    [(1, 10, 4.0), (2, 10, 3.0), (1, 20, 5.0)],
                    [(1, 10, 4.0), (42, 20, 2.0)])

        result = pipeline.run_pipeline(data_dir=data_dir, mf_config=FAST_MF_CONFIG)
        assert math.isfinite(result['evaluation_metrics']['root_mean_squared_error'])


# -------------------------------------------------------------------
# Failure paths
# -------------------------------------------------------------------

class TestPipelineFailures:
    """Fatal errors propagate and no artifact is written."""

    def test_empty_training_table(self, tmp_path):
        """An empty training file aborts before saving."""
        data_dir = tmp_path / "Data"
        data_dir.mkdir()
        write_split(data_dir, [], [(1, 10, 4.0)])

        with pytest.raises(ValueError):
            pipeline.run_pipeline(data_dir=data_dir)
        assert not (data_dir / config.MODEL_FILE_NAME).exists()

    def test_missing_training_file(self, data_dir):
        """A missing input file is fatal."""
        (data_dir / config.TRAIN_FILE_NAME).unlink()
        with pytest.raises(FileNotFoundError):
            pipeline.run_pipeline(data_dir=data_dir)
        assert not (data_dir / config.MODEL_FILE_NAME).exists()

    def test_save_failure_keeps_stale_artifact(self, data_dir, mocker):
        """A failing save leaves the previous artifact untouched."""
        model_path = data_dir / config.MODEL_FILE_NAME
        model_path.write_bytes(b"previous run")

        mocker.patch("movie_recommender.serialize.pickle.dumps", side_effect=OSError("disk full"))
        with pytest.raises(OSError):
            pipeline.run_pipeline(data_dir=data_dir, mf_config=FAST_MF_CONFIG)

        assert model_path.read_bytes() == b"previous run"


# -------------------------------------------------------------------
# Command line
# -------------------------------------------------------------------

class TestMain:
    """Tests for main()"""

    def test_main_passes_arguments(self, mocker, tmp_path):
        """--data-dir and --model-path are forwarded to run_pipeline."""
        run = mocker.patch("movie_recommender.pipeline.run_pipeline", return_value={})
        pipeline.main(["--data-dir", str(tmp_path), "--model-path", str(tmp_path / "m.zip")])
        run.assert_called_once_with(data_dir=str(tmp_path), model_path=str(tmp_path / "m.zip"))

    def test_main_pause(self, mocker):
        """--pause waits for Enter before returning."""
        mocker.patch("movie_recommender.pipeline.run_pipeline", return_value={})
        wait = mocker.patch("builtins.input", return_value="")
        pipeline.main(["--pause"])
        wait.assert_called_once()
