from extensions import db


class Batch(db.Model):
    __tablename__ = "batches"

    batch_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    degree = db.Column(db.String(20), nullable=False)
    branch = db.Column(db.String(50), nullable=False)
    batch = db.Column(db.String(10), nullable=False)
    batch_years = db.Column(db.String(20), nullable=True)
    is_active = db.Column(db.Boolean, default=True)

    semesters = db.relationship("Semester", backref="batch", lazy=True)

    def __repr__(self):
        return f"<Batch {self.degree} {self.branch} {self.batch}>"
