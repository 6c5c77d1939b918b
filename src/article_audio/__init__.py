"""
Article Audio – turns a web article URL into a hosted audio file.

Run from the command line:
  article-audio https://example.com/some-article

Or from code:
  from article_audio.config import load_settings
  from article_audio.application.pipeline import ArticleAudioPipeline
  pipeline = ArticleAudioPipeline.from_settings(load_settings())
  result = pipeline.run("https://example.com/some-article")
"""

__version__ = "0.1.0"
