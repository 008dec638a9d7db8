from sqlalchemy import Column, BigInteger, Integer, String, Index
from models.base import Base


class Note(Base):
    """
    Bulk-load target for the published notes payload.

    The column order matches the payload's tab-separated header, so COPY maps
    columns positionally. The table is replaced wholesale by each import job.
    """
    __tablename__ = "note"

    noteid = Column(BigInteger, primary_key=True, autoincrement=False)
    noteauthorparticipantid = Column(String(255), nullable=True)
    createdatmillis = Column(BigInteger, nullable=True)
    tweetid = Column(String(255), nullable=True)
    classification = Column(String(255), nullable=True)
    believable = Column(String(255), nullable=True)
    harmful = Column(String(255), nullable=True)
    validationdifficulty = Column(String(255), nullable=True)
    misleadingother = Column(Integer, nullable=False)
    misleadingfactualerror = Column(Integer, nullable=False)
    misleadingmanipulatedmedia = Column(Integer, nullable=False)
    misleadingoutdatedinformation = Column(Integer, nullable=False)
    misleadingmissingimportantcontext = Column(Integer, nullable=False)
    misleadingunverifiedclaimasfact = Column(Integer, nullable=False)
    misleadingsatire = Column(Integer, nullable=False)
    notmisleadingother = Column(Integer, nullable=False)
    notmisleadingfactuallycorrect = Column(Integer, nullable=False)
    notmisleadingoutdatedbutnotwhenwritten = Column(Integer, nullable=False)
    notmisleadingclearlysatire = Column(Integer, nullable=False)
    notmisleadingpersonalopinion = Column(Integer, nullable=False)
    trustworthysources = Column(Integer, nullable=False)
    summary = Column(String(8192), nullable=True)
    ismedianote = Column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_note_createdatmillis", "createdatmillis"),
        Index("idx_note_author", "noteauthorparticipantid"),
        Index("idx_note_tweetid", "tweetid"),
    )


NOTE_COLUMNS = [column.name for column in Note.__table__.columns]
